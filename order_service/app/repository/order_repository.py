from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.order import Order


class OrderRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, order: Order) -> None:
        self.session.add(order)

    async def get_order_by_id(self, order_id: int) -> Optional[Order]:
        """Get order by ID with items"""
        result = await self.session.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    async def get_order_by_idempotency_key(self, idempotency_key: str) -> Optional[Order]:
        result = await self.session.execute(
            select(Order).where(Order.idempotency_key == idempotency_key)
        )
        return result.scalars().first()

    async def list_orders(self, user_id: Optional[int] = None) -> List[Order]:
        """Orders newest first, optionally for one user"""
        query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_order_status(
        self, order_id: int, expected_status: str, new_status: str
    ) -> bool:
        """Move the order to ``new_status`` only if it is still in ``expected_status``.

        Returns False when another writer changed the status first.
        """
        result = await self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected_status)
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
