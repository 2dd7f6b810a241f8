from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CartCreate(BaseModel):
    user_id: Optional[int] = Field(None, gt=0)
    session_id: Optional[str] = Field(None, min_length=1, max_length=255)


class CartItemCreate(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int


class CartItemUpdate(BaseModel):
    quantity: int


class CheckoutRequest(BaseModel):
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    added_at: datetime
    product_name: Optional[str] = None
    unit_price: Optional[Decimal] = None
    subtotal: Optional[Decimal] = None


class CartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    session_id: str
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    items: List[CartItemResponse] = []
    total: Decimal = Decimal("0.00")


class CheckoutResponse(BaseModel):
    message: str
    order: Dict[str, Any]


class DeleteResult(BaseModel):
    result: str = "success"
