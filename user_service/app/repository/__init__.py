from .order_history_repository import OrderHistoryRepository
from .user_repository import UserRepository

__all__ = ["OrderHistoryRepository", "UserRepository"]
