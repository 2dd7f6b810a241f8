from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.cart import Cart, CartItem


class CartRepository:
    """Data access for carts and their items.

    The repository only stages changes; services own commit and rollback so
    that several changes can share one transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, cart: Cart) -> None:
        self.session.add(cart)

    async def delete(self, cart: Cart) -> None:
        await self.session.delete(cart)

    async def get_cart(self, cart_id: int, for_update: bool = False) -> Optional[Cart]:
        query = select(Cart).where(Cart.id == cart_id).execution_options(
            populate_existing=True
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_cart_by_session(self, session_id: str) -> Optional[Cart]:
        result = await self.session.execute(
            select(Cart).where(Cart.session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def get_live_cart_by_user(
        self,
        user_id: int,
        now: datetime,
        exclude_cart_id: Optional[int] = None,
        for_update: bool = False,
    ) -> Optional[Cart]:
        """Most recently updated unexpired cart owned by ``user_id``."""
        query = (
            select(Cart)
            .where(Cart.user_id == user_id, Cart.expires_at > now)
            .execution_options(populate_existing=True)
        )
        if exclude_cart_id is not None:
            query = query.where(Cart.id != exclude_cart_id)
        query = query.order_by(Cart.updated_at.desc(), Cart.id.desc()).limit(1)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().first()

    async def delete_expired_carts(self, now: datetime) -> int:
        """Delete every cart with ``expires_at < now`` together with its items."""
        expired_cart_ids = select(Cart.id).where(Cart.expires_at < now)
        await self.session.execute(
            delete(CartItem)
            .where(CartItem.cart_id.in_(expired_cart_ids))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(Cart)
            .where(Cart.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
