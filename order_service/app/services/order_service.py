"""
Order creation, validation and the order status state machine.
"""

from collections import Counter, OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    ConflictError,
    InvalidUserError,
    NotFoundError,
    PersistenceError,
    UpstreamServiceError,
    ValidationError,
)
from ..core.settings import get_settings
from ..events.producers import OrderEventProducer
from ..models.order import Order, OrderItem, OrderStatus
from ..repository.order_repository import OrderRepository
from ..utils.logging import setup_order_logging as setup_logging
from ..utils.service_clients import ProductCatalog, UserDirectory

logger = setup_logging("order_service.services.order", log_level=get_settings().LOG_LEVEL)

CENT = Decimal("0.01")

ALLOWED_TRANSITIONS: Dict[str, List[str]] = {
    OrderStatus.PENDING: [OrderStatus.PROCESSING, OrderStatus.CANCELLED],
    OrderStatus.PROCESSING: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED],
    OrderStatus.DELIVERED: [],  # Final state
    OrderStatus.CANCELLED: [],  # Final state
}


class OrderService:
    def __init__(
        self,
        session: AsyncSession,
        product_client: ProductCatalog,
        user_client: UserDirectory,
        event_producer: Optional[OrderEventProducer] = None,
    ):
        self.session = session
        self.order_repository = OrderRepository(session)
        self.product_client = product_client
        self.user_client = user_client
        self.event_producer = event_producer

    def _validate_status_transition(self, current_status: str, new_status: str) -> None:
        """Validate that a status transition is allowed"""
        if new_status not in ALLOWED_TRANSITIONS.get(current_status, []):
            raise ConflictError(
                f"Invalid status transition from {current_status} to {new_status}",
                details={"current_status": current_status, "new_status": new_status},
            )

    async def _build_order_lines(
        self, items: List[Dict[str, int]]
    ) -> List[OrderItem]:
        """Validate every requested line against the catalog.

        All problems are collected so the caller sees every bad line at once.
        Quantities for repeated products are checked cumulatively.
        """
        if not items:
            raise ValidationError("Order must contain at least one item")
        for item in items:
            if item["quantity"] <= 0:
                raise ValidationError(
                    "Item quantity must be greater than 0",
                    details={"product_id": item["product_id"]},
                )

        requested: "OrderedDict[int, int]" = OrderedDict()
        for item in items:
            requested[item["product_id"]] = (
                requested.get(item["product_id"], 0) + item["quantity"]
            )

        problems: List[Dict[str, Any]] = []
        products = {}
        for product_id, quantity in requested.items():
            try:
                product = await self.product_client.get_product(product_id)
            except UpstreamServiceError:
                problems.append(
                    {
                        "product_id": product_id,
                        "message": f"Could not verify product with ID {product_id}: "
                        "product service unavailable",
                    }
                )
                continue

            if product is None:
                problems.append(
                    {
                        "product_id": product_id,
                        "message": f"Product with ID {product_id} not found",
                    }
                )
            elif product.inventory < quantity:
                problems.append(
                    {
                        "product_id": product_id,
                        "message": f"Insufficient inventory for product {product.name} "
                        f"(ID: {product_id})",
                        "requested": quantity,
                        "available": product.inventory,
                    }
                )
            else:
                products[product_id] = product

        if problems:
            raise ValidationError(
                "; ".join(problem["message"] for problem in problems),
                details={"problems": problems},
            )

        return [
            OrderItem(
                product_id=item["product_id"],
                product_name=products[item["product_id"]].name,
                quantity=item["quantity"],
                price=products[item["product_id"]].price.quantize(CENT),
            )
            for item in items
        ]

    async def _publish_after_commit(self, order: Order, coro, event_name: str) -> None:
        # The order is already committed; a lost event is reconciled out of band
        try:
            await coro
        except Exception as e:
            logger.error(
                f"Order persisted but {event_name} event was not published",
                exc_info=True,
                extra={
                    "order_id": order.id,
                    "status": order.status,
                    "error_type": type(e).__name__,
                },
            )

    def _replay(
        self, existing: Order, user_id: int, items: List[Dict[str, int]], idempotency_key: str
    ) -> Order:
        """Return ``existing`` if the request repeats it, else raise ConflictError."""
        requested: Counter = Counter()
        for item in items:
            requested[item["product_id"]] += item["quantity"]
        stored: Counter = Counter()
        for item in existing.items:
            stored[item.product_id] += item.quantity

        if existing.user_id != user_id or requested != stored:
            logger.warning(
                "Idempotency key reused for a different order request",
                extra={"idempotency_key": idempotency_key, "user_id": user_id},
            )
            raise ConflictError(
                "Idempotency key was already used for a different order",
                details={"idempotency_key": idempotency_key},
            )

        logger.info(
            "Returning existing order for idempotency key",
            extra={"order_id": existing.id, "idempotency_key": idempotency_key},
        )
        return existing

    async def create_order(
        self,
        user_id: int,
        items: List[Dict[str, int]],
        idempotency_key: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> Order:
        """
        Create a new order with event publishing.

        A repeated ``idempotency_key`` returns the order created the first
        time without writing rows or publishing events. The repeat must come
        from the same user with the same items, otherwise it is a conflict.
        """
        if idempotency_key:
            existing = await self.order_repository.get_order_by_idempotency_key(
                idempotency_key
            )
            if existing:
                return self._replay(existing, user_id, items, idempotency_key)

        if not await self.user_client.user_exists(user_id):
            raise InvalidUserError("Invalid user ID", details={"user_id": user_id})

        order_items = await self._build_order_lines(items)
        total_price = sum(
            (item.price * item.quantity for item in order_items), Decimal("0")
        ).quantize(CENT)

        order = Order(
            user_id=user_id,
            total_price=total_price,
            status=OrderStatus.PENDING,
            idempotency_key=idempotency_key,
            items=order_items,
        )
        self.order_repository.add(order)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if idempotency_key:
                existing = await self.order_repository.get_order_by_idempotency_key(
                    idempotency_key
                )
                if existing:
                    return self._replay(existing, user_id, items, idempotency_key)
            raise PersistenceError("Failed to create order") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to create order", exc_info=True, extra={"user_id": user_id})
            raise PersistenceError("Failed to create order") from e

        logger.info(
            "Order created successfully.",
            extra={
                "order_id": order.id,
                "user_id": user_id,
                "total_price": str(total_price),
                "item_count": len(order_items),
            },
        )

        if self.event_producer:
            for item in order.items:
                await self._publish_after_commit(
                    order,
                    self.event_producer.publish_inventory_adjustment(
                        order, item, is_increase=False, correlation_id=correlation_id
                    ),
                    "inventory adjustment",
                )
            await self._publish_after_commit(
                order,
                self.event_producer.publish_order_history(
                    order, correlation_id=correlation_id
                ),
                "order history",
            )

        return order

    async def get_order(self, order_id: int) -> Order:
        order = await self.order_repository.get_order_by_id(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def list_orders(self, user_id: Optional[int] = None) -> List[Order]:
        return await self.order_repository.list_orders(user_id=user_id)

    async def update_order_status(
        self,
        order_id: int,
        new_status: str,
        correlation_id: Optional[str] = None,
    ) -> Order:
        """
        Update order status with event publishing.

        Cancelling an order publishes one inventory increase per original
        line; every successful change publishes an order-history record.
        """
        if new_status not in OrderStatus.ALL:
            raise ValidationError(
                "Invalid status",
                details={"status": new_status, "valid_statuses": list(OrderStatus.ALL)},
            )

        order = await self.get_order(order_id)
        previous_status = order.status
        self._validate_status_transition(previous_status, new_status)

        try:
            updated = await self.order_repository.update_order_status(
                order_id, expected_status=previous_status, new_status=new_status
            )
            if not updated:
                await self.session.rollback()
                raise ConflictError(
                    f"Order {order_id} status changed concurrently",
                    details={"expected_status": previous_status},
                )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("Failed to update order status") from e

        await self.session.refresh(order)

        logger.info(
            "Order status updated.",
            extra={
                "order_id": order_id,
                "old_status": previous_status,
                "new_status": new_status,
            },
        )

        if self.event_producer:
            if new_status == OrderStatus.CANCELLED:
                for item in order.items:
                    await self._publish_after_commit(
                        order,
                        self.event_producer.publish_inventory_adjustment(
                            order, item, is_increase=True, correlation_id=correlation_id
                        ),
                        "inventory restore",
                    )
            await self._publish_after_commit(
                order,
                self.event_producer.publish_order_history(
                    order, correlation_id=correlation_id
                ),
                "order history",
            )

        return order
