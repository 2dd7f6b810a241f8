"""
Cart Service event payloads published on the cart activity topic.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CartEventType:
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    ITEM_ADDED = "item_added"
    ITEM_UPDATED = "item_updated"
    ITEM_REMOVED = "item_removed"
    CHECKOUT = "checkout"


class CartActivityData(BaseModel):
    """Informational cart activity; nothing in the system consumes it for state."""

    event_type: str
    cart_id: int
    user_id: Optional[int] = None
    session_id: str
    product_id: Optional[int] = None
    quantity: Optional[int] = None
    event_time: datetime
