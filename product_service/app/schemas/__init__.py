from .inventory import InventoryUpdate
from .product import ProductResponse

__all__ = ["InventoryUpdate", "ProductResponse"]
