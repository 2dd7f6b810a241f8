"""
Payloads consumed by the Product Service.
"""

from pydantic import BaseModel, Field


class ProductEventType:
    INVENTORY_UPDATE = "inventory_update"


class InventoryAdjustmentData(BaseModel):
    """Relative inventory change: a magnitude plus a direction."""

    product_id: int
    quantity: int = Field(gt=0)
    is_increase: bool
