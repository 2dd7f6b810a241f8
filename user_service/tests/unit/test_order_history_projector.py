from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from user_service.app.events.base import MalformedEventError
from user_service.app.events.event_consumers import OrderHistoryProjector
from user_service.app.models.order_history import OrderHistoryEntry


async def _entry_count(session) -> int:
    result = await session.execute(select(func.count()).select_from(OrderHistoryEntry))
    return result.scalar_one()


async def test_event_is_appended_once_under_redelivery(
    database_manager, db_session, order_update_event
):
    projector = OrderHistoryProjector(database_manager.async_session_maker)
    event = order_update_event(order_id=1, status="pending")

    await projector.handle(event)
    await projector.handle(event)

    assert await _entry_count(db_session) == 1
    entry = (await db_session.execute(select(OrderHistoryEntry))).scalars().one()
    assert entry.event_id == "order-1-pending"
    assert entry.total == Decimal("63.98")
    assert (entry.user_id, entry.order_id, entry.status) == (42, 1, "pending")


async def test_each_status_gets_its_own_row(database_manager, db_session, order_update_event):
    projector = OrderHistoryProjector(database_manager.async_session_maker)

    for status in ("pending", "processing", "cancelled"):
        await projector.handle(order_update_event(order_id=1, status=status))

    assert await _entry_count(db_session) == 3


@pytest.mark.parametrize(
    "overrides",
    [{"user_id": "someone"}, {"total": "lots"}, {"created_at": None}],
)
async def test_malformed_payload_is_rejected(
    database_manager, order_update_event, overrides
):
    projector = OrderHistoryProjector(database_manager.async_session_maker)

    with pytest.raises(MalformedEventError):
        await projector.handle(order_update_event(**overrides))


async def test_record_reports_duplicates(order_history):
    created_at = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    args = dict(
        event_id="order-7-shipped",
        user_id=43,
        order_id=7,
        total=Decimal("10.00"),
        status="shipped",
        created_at=created_at,
    )

    assert await order_history.record_order_update(**args) is True
    assert await order_history.record_order_update(**args) is False


async def test_timezone_aware_timestamps_are_stored_as_naive_utc(order_history, db_session):
    await order_history.record_order_update(
        event_id="order-8-pending",
        user_id=43,
        order_id=8,
        total=Decimal("5.00"),
        status="pending",
        created_at=datetime(2024, 1, 1, 14, 0, tzinfo=timezone.utc),
    )

    entry = (await db_session.execute(select(OrderHistoryEntry))).scalars().one()
    assert entry.created_at == datetime(2024, 1, 1, 14, 0)
