import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from cart_service.app.models.base import utcnow
from cart_service.app.models.cart import Cart, CartItem
from cart_service.app.tasks.cart_sweeper import CartSweeper


async def _seed(session) -> None:
    now = utcnow()
    session.add_all(
        [
            Cart(
                session_id="session-expired",
                created_at=now - timedelta(days=8),
                updated_at=now - timedelta(days=8),
                expires_at=now - timedelta(days=1),
                items=[CartItem(product_id=7, quantity=1, added_at=now)],
            ),
            Cart(
                session_id="session-live",
                created_at=now,
                updated_at=now,
                expires_at=now + timedelta(days=7),
                items=[CartItem(product_id=3, quantity=2, added_at=now)],
            ),
        ]
    )
    await session.commit()


async def _sessions(session):
    result = await session.execute(select(Cart.session_id))
    return sorted(result.scalars().all())


async def test_sweep_deletes_only_expired_carts(database_manager, db_session):
    await _seed(db_session)
    sweeper = CartSweeper(database_manager.async_session_maker)

    deleted = await sweeper.sweep_once()

    assert deleted == 1
    assert await _sessions(db_session) == ["session-live"]
    item_count = await db_session.execute(select(func.count()).select_from(CartItem))
    assert item_count.scalar_one() == 1


async def test_second_sweep_deletes_nothing(database_manager, db_session):
    await _seed(db_session)
    sweeper = CartSweeper(database_manager.async_session_maker)

    assert await sweeper.sweep_once() == 1
    assert await sweeper.sweep_once() == 0


async def test_background_task_sweeps_until_stopped(database_manager, db_session):
    await _seed(db_session)
    sweeper = CartSweeper(database_manager.async_session_maker, interval_seconds=0.01)

    sweeper.start()
    assert sweeper.is_running
    await asyncio.sleep(0.1)
    await sweeper.stop()

    assert not sweeper.is_running
    assert await _sessions(db_session) == ["session-live"]
