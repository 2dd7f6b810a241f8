from .base import UserServiceBase, UserServiceBaseModel
from .order_history import OrderHistoryEntry
from .user import User

__all__ = ["UserServiceBase", "UserServiceBaseModel", "User", "OrderHistoryEntry"]
