"""Inventory ledger repository"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.product import ProcessedInventoryEvent, Product


class InventoryRepository:
    """Relative inventory updates and the processed-event ledger.

    Quantities are never read, changed in Python and written back: every
    change is an ``inventory = inventory + delta`` statement so concurrent
    adjustments of the same product cannot overwrite each other.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, product: Product) -> None:
        self.session.add(product)

    async def get_product(self, product_id: int) -> Optional[Product]:
        result = await self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def is_processed(self, event_id: str) -> bool:
        result = await self.session.execute(
            select(ProcessedInventoryEvent.event_id).where(
                ProcessedInventoryEvent.event_id == event_id
            )
        )
        return result.first() is not None

    async def get_processed(self, event_id: str) -> Optional[ProcessedInventoryEvent]:
        result = await self.session.execute(
            select(ProcessedInventoryEvent).where(
                ProcessedInventoryEvent.event_id == event_id
            )
        )
        return result.scalars().first()

    def record_processed(
        self, event_id: str, product_id: int, delta: int, applied_delta: int
    ) -> None:
        self.session.add(
            ProcessedInventoryEvent(
                event_id=event_id,
                product_id=product_id,
                delta=delta,
                applied_delta=applied_delta,
            )
        )

    async def _increment(self, product_id: int, delta: int, floor_check: bool) -> bool:
        query = update(Product).where(Product.id == product_id)
        if floor_check:
            query = query.where(Product.inventory + delta >= 0)
        result = await self.session.execute(
            query.values(inventory=Product.inventory + delta, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def apply_delta(self, product_id: int, delta: int) -> Optional[int]:
        """Add ``delta`` to the product's inventory, flooring the result at zero.

        Returns the delta that was actually applied, or None when the
        product does not exist.
        """
        if await self._increment(product_id, delta, floor_check=delta < 0):
            return delta

        # Either the product is unknown or the decrease is larger than what
        # is left; the row lock keeps the shortfall exact under concurrency
        result = await self.session.execute(
            select(Product.inventory)
            .where(Product.id == product_id)
            .with_for_update()
        )
        available = result.scalar_one_or_none()
        if available is None:
            return None

        await self._increment(product_id, -available, floor_check=False)
        return -available
