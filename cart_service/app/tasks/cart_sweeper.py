"""
Background removal of expired carts.
"""

import asyncio
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import PersistenceError
from ..core.settings import get_settings
from ..models.base import utcnow
from ..repository.cart_repository import CartRepository
from ..utils.logging import setup_cart_logging

logger = setup_cart_logging("cart_service.tasks.sweeper", log_level=get_settings().LOG_LEVEL)


class CartSweeper:
    """Periodically deletes carts whose ``expires_at`` has passed.

    Each sweep runs in its own session and transaction. A failed sweep is
    logged and the loop carries on with the next interval.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        interval_seconds: float = 3600,
    ):
        self.session_maker = session_maker
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        """Delete expired carts and their items; return how many carts went."""
        async with self.session_maker() as session:
            try:
                deleted = await CartRepository(session).delete_expired_carts(utcnow())
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError("Failed to delete expired carts") from e

        logger.info("Expired carts swept", extra={"deleted_carts": deleted})
        return deleted

    def start(self) -> None:
        if self.is_running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="cart-sweeper")
        logger.info(
            "Cart sweeper started", extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("Cart sweeper stopped")

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(
                    self._stopping.wait(), timeout=self.interval_seconds
                )
                return
            except asyncio.TimeoutError:
                pass

            try:
                await self.sweep_once()
            except PersistenceError:
                logger.error("Cart sweep failed", exc_info=True)
