from .cart import (
    CartCreate,
    CartItemCreate,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    DeleteResult,
)

__all__ = [
    "CartCreate",
    "CartItemCreate",
    "CartItemResponse",
    "CartItemUpdate",
    "CartResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "DeleteResult",
]
