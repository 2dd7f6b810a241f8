from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    created_at: datetime
    updated_at: datetime


class OrderHistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    order_id: int
    total: Decimal
    status: str
    created_at: datetime


class OrderHistoryResponse(BaseModel):
    orders: List[OrderHistoryEntryResponse]
    total: int
