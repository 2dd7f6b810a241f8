from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DECIMAL, TEXT, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import ProductServiceBase, ProductServiceBaseModel, utcnow


class Product(ProductServiceBaseModel):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("inventory >= 0", name="ck_products_inventory_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    # Available quantity; only ever changed by relative updates
    inventory: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ProcessedInventoryEvent(ProductServiceBase):
    """Adjustment events already applied to the ledger, keyed by event id."""

    __tablename__ = "processed_inventory_events"

    event_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    # What actually reached the ledger: 0 for unknown products, less than
    # delta when a decrease was clamped at zero
    applied_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
