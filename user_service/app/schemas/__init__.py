from .user import OrderHistoryEntryResponse, OrderHistoryResponse, UserResponse

__all__ = ["OrderHistoryEntryResponse", "OrderHistoryResponse", "UserResponse"]
