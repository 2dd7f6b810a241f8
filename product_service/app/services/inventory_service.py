"""
Inventory ledger operations.

Adjustments arrive from the order component as events and may be
delivered more than once; each event id is applied at most once, in the
same transaction that records it.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, PersistenceError, ValidationError
from ..core.settings import get_settings
from ..models.product import Product
from ..repository.inventory_repository import InventoryRepository
from ..utils.logging import setup_product_logging as setup_logging

logger = setup_logging(
    "product_service.services.inventory", log_level=get_settings().LOG_LEVEL
)

# Order-line event ids end in one of these; a restock pairs with its decrease
DECREASE_SUFFIX = "-decrease"
RESTOCK_SUFFIX = "-increase"


class InventoryService:
    """Service class for inventory business logic"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = InventoryRepository(session)

    @staticmethod
    def _check_quantity(product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError(
                "Adjustment quantity must be greater than 0",
                details={"product_id": product_id, "quantity": quantity},
            )

    async def _restock_quantity(self, event_id: str, product_id: int, quantity: int) -> int:
        """Units a restock may return: what the matching decrease actually took.

        A decrease clamped at zero took less than its order line asked for,
        so returning the full line would create stock that never existed.
        """
        if not event_id.endswith(RESTOCK_SUFFIX):
            return quantity
        decrease_id = event_id[: -len(RESTOCK_SUFFIX)] + DECREASE_SUFFIX
        decrease = await self.repository.get_processed(decrease_id)
        if decrease is None:
            return quantity

        taken = -decrease.applied_delta
        if taken < quantity:
            logger.warning(
                "Restock limited to the units the order line took",
                extra={
                    "event_id": event_id,
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "restocked_quantity": taken,
                },
            )
        return min(quantity, taken)

    async def _apply(
        self, product_id: int, quantity: int, is_increase: bool, correlation_id: Optional[str]
    ) -> Optional[int]:
        self._check_quantity(product_id, quantity)
        delta = quantity if is_increase else -quantity
        applied = await self.repository.apply_delta(product_id, delta)

        if applied is not None and applied != delta:
            logger.error(
                "inventory oversell",
                extra={
                    "product_id": product_id,
                    "requested_delta": delta,
                    "applied_delta": applied,
                    "shortfall": applied - delta,
                    "correlation_id": correlation_id,
                },
            )
        return applied

    async def apply_adjustment(
        self,
        event_id: str,
        product_id: int,
        quantity: int,
        is_increase: bool,
        correlation_id: Optional[str] = None,
    ) -> bool:
        """Apply one adjustment event to the ledger.

        A restock for an order line returns only what the line's decrease
        took. Returns False when the event was already processed.
        """
        if await self.repository.is_processed(event_id):
            logger.info(
                "Skipping already processed inventory event",
                extra={"event_id": event_id, "product_id": product_id},
            )
            return False

        try:
            self._check_quantity(product_id, quantity)
            to_apply = quantity
            if is_increase:
                to_apply = await self._restock_quantity(event_id, product_id, quantity)

            applied: Optional[int] = 0
            if to_apply > 0:
                applied = await self._apply(product_id, to_apply, is_increase, correlation_id)
            if applied is None:
                logger.warning(
                    "Inventory event for unknown product",
                    extra={
                        "event_id": event_id,
                        "product_id": product_id,
                        "correlation_id": correlation_id,
                    },
                )
                applied = 0

            self.repository.record_processed(
                event_id,
                product_id,
                delta=quantity if is_increase else -quantity,
                applied_delta=applied,
            )
            await self.session.commit()
        except IntegrityError:
            # Another consumer recorded the same event first
            await self.session.rollback()
            logger.info(
                "Inventory event processed concurrently",
                extra={"event_id": event_id, "product_id": product_id},
            )
            return False
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(
                "Failed to apply inventory adjustment",
                details={"event_id": event_id, "product_id": product_id},
            ) from e

        logger.info(
            "Inventory adjustment applied",
            extra={
                "event_id": event_id,
                "product_id": product_id,
                "applied_delta": applied,
                "correlation_id": correlation_id,
            },
        )
        return True

    async def get_product(self, product_id: int) -> Product:
        product = await self.repository.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        return product

    async def adjust_inventory(
        self,
        product_id: int,
        quantity: int,
        is_increase: bool,
        correlation_id: Optional[str] = None,
    ) -> Product:
        """Manual adjustment outside the event flow; not deduplicated."""
        try:
            applied = await self._apply(product_id, quantity, is_increase, correlation_id)
            if applied is None:
                await self.session.rollback()
                raise NotFoundError(
                    "Product not found", details={"product_id": product_id}
                )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(
                "Failed to adjust inventory", details={"product_id": product_id}
            ) from e

        logger.info(
            "Manual inventory adjustment applied",
            extra={
                "product_id": product_id,
                "applied_delta": applied,
                "correlation_id": correlation_id,
            },
        )
        return await self.get_product(product_id)
