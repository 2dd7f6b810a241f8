from .base import CartServiceBase, CartServiceBaseModel, utcnow
from .cart import Cart, CartItem

__all__ = ["CartServiceBase", "CartServiceBaseModel", "utcnow", "Cart", "CartItem"]
