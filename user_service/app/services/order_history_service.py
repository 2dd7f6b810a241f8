"""
Order-history projection.

Each order status event becomes one appended history row. Events can be
redelivered, so the event id is stored with a unique constraint and a
repeat is reported instead of inserted.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import PersistenceError
from ..core.settings import get_settings
from ..models.order_history import OrderHistoryEntry
from ..repository.order_history_repository import OrderHistoryRepository
from ..utils.logging import setup_user_logging as setup_logging

logger = setup_logging(
    "user_service.services.order_history", log_level=get_settings().LOG_LEVEL
)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class OrderHistoryService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = OrderHistoryRepository(session)

    async def record_order_update(
        self,
        event_id: str,
        user_id: int,
        order_id: int,
        total: Decimal,
        status: str,
        created_at: datetime,
        correlation_id: Optional[str] = None,
    ) -> bool:
        """Append a history row; returns False if the event was seen before."""
        if await self.repository.has_event(event_id):
            logger.info(
                "Skipping already projected order event",
                extra={"event_id": event_id, "order_id": order_id},
            )
            return False

        self.repository.add(
            OrderHistoryEntry(
                event_id=event_id,
                user_id=user_id,
                order_id=order_id,
                total=total,
                status=status,
                created_at=_naive_utc(created_at),
            )
        )
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(
                "Order event projected concurrently",
                extra={"event_id": event_id, "order_id": order_id},
            )
            return False
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(
                "Failed to store order history",
                details={"event_id": event_id, "order_id": order_id},
            ) from e

        logger.info(
            "Stored order history",
            extra={
                "event_id": event_id,
                "user_id": user_id,
                "order_id": order_id,
                "status": status,
                "correlation_id": correlation_id,
            },
        )
        return True
