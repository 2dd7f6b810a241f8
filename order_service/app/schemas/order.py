from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderItemRequest(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int


class CreateOrderRequest(BaseModel):
    user_id: int
    items: List[OrderItemRequest]


class UpdateOrderStatusRequest(BaseModel):
    status: str


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    quantity: int
    price: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    total_price: Decimal
    status: str
    idempotency_key: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse]


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int
