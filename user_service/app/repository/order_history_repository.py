from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.order_history import OrderHistoryEntry


class OrderHistoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, entry: OrderHistoryEntry) -> None:
        self.session.add(entry)

    async def has_event(self, event_id: str) -> bool:
        result = await self.session.execute(
            select(OrderHistoryEntry.id).where(OrderHistoryEntry.event_id == event_id)
        )
        return result.first() is not None

    async def list_for_user(self, user_id: int) -> List[OrderHistoryEntry]:
        """History entries for a user, newest first"""
        result = await self.session.execute(
            select(OrderHistoryEntry)
            .where(OrderHistoryEntry.user_id == user_id)
            .order_by(OrderHistoryEntry.created_at.desc(), OrderHistoryEntry.id.desc())
        )
        return list(result.scalars().all())
