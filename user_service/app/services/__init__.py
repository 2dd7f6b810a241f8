from .order_history_service import OrderHistoryService
from .user_service import UserService

__all__ = ["OrderHistoryService", "UserService"]
