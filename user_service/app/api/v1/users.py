from fastapi import APIRouter, status

from ...schemas.user import OrderHistoryEntryResponse, OrderHistoryResponse, UserResponse
from ...services.user_service import UserService
from ..dependencies import UserServiceDep

router = APIRouter(prefix="/users")


@router.get("/{user_id}", status_code=status.HTTP_200_OK)
async def get_user(user_id: int, service: UserService = UserServiceDep) -> UserResponse:
    """Look up a user; other services use this as the existence check"""
    return UserResponse.model_validate(await service.get_user(user_id))


@router.get("/{user_id}/orders", status_code=status.HTTP_200_OK)
async def get_user_orders(
    user_id: int, service: UserService = UserServiceDep
) -> OrderHistoryResponse:
    """Order history for a user, newest first"""
    entries = await service.get_order_history(user_id)
    return OrderHistoryResponse(
        orders=[OrderHistoryEntryResponse.model_validate(entry) for entry in entries],
        total=len(entries),
    )
