from .base import OrderServiceBase, OrderServiceBaseModel, utcnow
from .order import Order, OrderItem, OrderStatus

__all__ = [
    "OrderServiceBase",
    "OrderServiceBaseModel",
    "utcnow",
    "Order",
    "OrderItem",
    "OrderStatus",
]
