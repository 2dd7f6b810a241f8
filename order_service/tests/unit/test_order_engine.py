import logging
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from order_service.app.core.exceptions import (
    ConflictError,
    InvalidUserError,
    NotFoundError,
    ValidationError,
)
from order_service.app.models.order import Order, OrderStatus


async def _order_count(session) -> int:
    return (await session.execute(select(func.count()).select_from(Order))).scalar_one()


class TestCreateOrder:
    async def test_snapshots_prices_and_computes_total(self, order_engine):
        order = await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 2}, {"product_id": 5, "quantity": 1}]
        )

        assert order.status == OrderStatus.PENDING
        assert order.total_price == Decimal("63.98")
        assert [(item.product_name, item.price) for item in order.items] == [
            ("Pour-over Kettle", Decimal("19.99")),
            ("Ceramic Dripper", Decimal("24.00")),
        ]

    async def test_price_snapshot_survives_catalog_change(
        self, order_engine, product_catalog, db_session
    ):
        order = await order_engine.create_order(42, [{"product_id": 3, "quantity": 1}])
        product_catalog.add_product(3, "Pour-over Kettle", "24.99", inventory=10)

        db_session.expunge_all()
        stored = await order_engine.get_order(order.id)

        assert stored.items[0].price == Decimal("19.99")
        assert stored.total_price == Decimal("19.99")

    async def test_publishes_decreases_and_pending_history(
        self, order_engine, event_publisher
    ):
        order = await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 2}, {"product_id": 5, "quantity": 1}]
        )

        adjustments = event_publisher.on_topic("inventory_updates")
        assert [event.data for event in adjustments] == [
            {"product_id": 3, "quantity": 2, "is_increase": False},
            {"product_id": 5, "quantity": 1, "is_increase": False},
        ]
        assert adjustments[0].event_id == (
            f"order-{order.id}-item-{order.items[0].id}-decrease"
        )

        (history,) = event_publisher.on_topic("order_updates")
        assert history.event_id == f"order-{order.id}-pending"
        assert history.data["status"] == "pending"
        assert history.data["total"] == "63.98"
        assert history.data["user_id"] == 42

    async def test_unknown_user_is_rejected(self, order_engine, db_session):
        with pytest.raises(InvalidUserError, match="Invalid user ID"):
            await order_engine.create_order(7, [{"product_id": 3, "quantity": 1}])

        assert await _order_count(db_session) == 0

    async def test_empty_order_is_rejected(self, order_engine):
        with pytest.raises(ValidationError):
            await order_engine.create_order(42, [])

    async def test_non_positive_quantity_is_rejected(self, order_engine):
        with pytest.raises(ValidationError):
            await order_engine.create_order(42, [{"product_id": 3, "quantity": 0}])

    async def test_one_bad_line_rejects_whole_order(
        self, order_engine, db_session, event_publisher
    ):
        with pytest.raises(ValidationError) as exc_info:
            await order_engine.create_order(
                42, [{"product_id": 3, "quantity": 1}, {"product_id": 5, "quantity": 9}]
            )

        assert "Ceramic Dripper" in exc_info.value.message
        assert await _order_count(db_session) == 0
        assert event_publisher.published == []

    async def test_all_problem_lines_are_reported(self, order_engine, product_catalog):
        product_catalog.unreachable_ids.add(5)

        with pytest.raises(ValidationError) as exc_info:
            await order_engine.create_order(
                42,
                [
                    {"product_id": 99, "quantity": 1},
                    {"product_id": 5, "quantity": 1},
                    {"product_id": 3, "quantity": 11},
                ],
            )

        problems = exc_info.value.details["problems"]
        assert [problem["product_id"] for problem in problems] == [99, 5, 3]
        assert problems[0]["message"] == "Product with ID 99 not found"
        assert problems[2]["message"] == (
            "Insufficient inventory for product Pour-over Kettle (ID: 3)"
        )

    async def test_repeated_product_lines_are_checked_together(self, order_engine):
        with pytest.raises(ValidationError):
            await order_engine.create_order(
                42, [{"product_id": 5, "quantity": 3}, {"product_id": 5, "quantity": 2}]
            )

    async def test_idempotency_key_returns_original_order(
        self, order_engine, db_session, event_publisher
    ):
        first = await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 1}], idempotency_key="checkout-session-1"
        )
        published = len(event_publisher.published)

        second = await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 1}], idempotency_key="checkout-session-1"
        )

        assert second.id == first.id
        assert await _order_count(db_session) == 1
        assert len(event_publisher.published) == published

    async def test_reused_key_with_different_items_is_conflict(
        self, order_engine, db_session, event_publisher
    ):
        await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 1}], idempotency_key="checkout-cart-1"
        )
        published = len(event_publisher.published)

        with pytest.raises(ConflictError):
            await order_engine.create_order(
                42, [{"product_id": 5, "quantity": 2}], idempotency_key="checkout-cart-1"
            )

        assert await _order_count(db_session) == 1
        assert len(event_publisher.published) == published

    async def test_reused_key_from_another_user_is_conflict(self, order_engine, db_session):
        await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 1}], idempotency_key="checkout-cart-2"
        )

        with pytest.raises(ConflictError):
            await order_engine.create_order(
                43, [{"product_id": 3, "quantity": 1}], idempotency_key="checkout-cart-2"
            )

        assert await _order_count(db_session) == 1

    async def test_replay_matches_items_regardless_of_line_split(self, order_engine):
        first = await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 2}], idempotency_key="checkout-cart-3"
        )

        second = await order_engine.create_order(
            42,
            [{"product_id": 3, "quantity": 1}, {"product_id": 3, "quantity": 1}],
            idempotency_key="checkout-cart-3",
        )

        assert second.id == first.id

    async def test_publish_failure_keeps_order(
        self, order_engine, event_publisher, db_session, caplog
    ):
        event_publisher.fail = True

        with caplog.at_level(logging.ERROR):
            order = await order_engine.create_order(42, [{"product_id": 3, "quantity": 1}])

        assert order.id is not None
        assert await _order_count(db_session) == 1
        lost = [r for r in caplog.records if "was not published" in r.getMessage()]
        assert lost
        assert all(r.levelno == logging.ERROR and r.exc_info for r in lost)


class TestOrderStatus:
    async def _order(self, order_engine):
        return await order_engine.create_order(
            42, [{"product_id": 3, "quantity": 2}, {"product_id": 5, "quantity": 1}]
        )

    async def test_cancel_publishes_one_increase_per_line(
        self, order_engine, event_publisher
    ):
        order = await self._order(order_engine)
        event_publisher.published.clear()

        cancelled = await order_engine.update_order_status(order.id, "cancelled")

        assert cancelled.status == "cancelled"
        increases = event_publisher.on_topic("inventory_updates")
        assert [event.data for event in increases] == [
            {"product_id": 3, "quantity": 2, "is_increase": True},
            {"product_id": 5, "quantity": 1, "is_increase": True},
        ]
        assert all(event.event_id.endswith("-increase") for event in increases)
        (history,) = event_publisher.on_topic("order_updates")
        assert history.event_id == f"order-{order.id}-cancelled"

    async def test_forward_transition_publishes_history_only(
        self, order_engine, event_publisher
    ):
        order = await self._order(order_engine)
        event_publisher.published.clear()

        await order_engine.update_order_status(order.id, "processing")

        assert event_publisher.on_topic("inventory_updates") == []
        assert len(event_publisher.on_topic("order_updates")) == 1

    @pytest.mark.parametrize(
        "path,illegal",
        [
            ([], "shipped"),
            ([], "pending"),
            (["cancelled"], "cancelled"),
            (["processing", "shipped", "delivered"], "cancelled"),
            (["processing", "shipped"], "cancelled"),
        ],
    )
    async def test_illegal_transitions_are_conflicts(self, order_engine, path, illegal):
        order = await self._order(order_engine)
        for status in path:
            await order_engine.update_order_status(order.id, status)

        with pytest.raises(ConflictError):
            await order_engine.update_order_status(order.id, illegal)

    async def test_unknown_status_is_validation_error(self, order_engine):
        order = await self._order(order_engine)

        with pytest.raises(ValidationError):
            await order_engine.update_order_status(order.id, "lost")

    async def test_unknown_order_is_not_found(self, order_engine):
        with pytest.raises(NotFoundError):
            await order_engine.update_order_status(404, "processing")

    async def test_list_orders_filters_by_user(self, order_engine, user_directory):
        user_directory.user_ids.add(43)
        await self._order(order_engine)
        await order_engine.create_order(43, [{"product_id": 3, "quantity": 1}])

        assert len(await order_engine.list_orders()) == 2
        assert [order.user_id for order in await order_engine.list_orders(user_id=43)] == [43]
