from .order import (
    CreateOrderRequest,
    OrderItemRequest,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    UpdateOrderStatusRequest,
)

__all__ = [
    "CreateOrderRequest",
    "OrderItemRequest",
    "OrderItemResponse",
    "OrderListResponse",
    "OrderResponse",
    "UpdateOrderStatusRequest",
]
