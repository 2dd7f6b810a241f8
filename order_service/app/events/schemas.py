"""
Order Service Event Schemas
===========================

Payloads the order engine publishes, plus the deterministic event ids the
downstream consumers deduplicate on.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class OrderEventType:
    INVENTORY_UPDATE = "inventory_update"
    ORDER_UPDATE = "order_update"


class InventoryAdjustmentData(BaseModel):
    """Relative stock change: a magnitude plus a direction."""

    product_id: int
    quantity: int = Field(..., gt=0)
    is_increase: bool


class OrderHistoryData(BaseModel):
    user_id: int
    order_id: int
    total: Decimal
    status: str
    created_at: datetime


def inventory_event_id(order_id: int, item_id: int, is_increase: bool) -> str:
    direction = "increase" if is_increase else "decrease"
    return f"order-{order_id}-item-{item_id}-{direction}"


def order_history_event_id(order_id: int, status: str) -> str:
    return f"order-{order_id}-{status}"
