from .base import ProductServiceBase, ProductServiceBaseModel
from .product import ProcessedInventoryEvent, Product

__all__ = [
    "ProductServiceBase",
    "ProductServiceBaseModel",
    "Product",
    "ProcessedInventoryEvent",
]
