"""
Payloads consumed by the User Service.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class UserEventType:
    ORDER_UPDATE = "order_update"


class OrderHistoryData(BaseModel):
    user_id: int
    order_id: int
    total: Decimal
    status: str
    created_at: datetime
