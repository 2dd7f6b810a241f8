from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..models.order_history import OrderHistoryEntry
from ..models.user import User
from ..repository.order_history_repository import OrderHistoryRepository
from ..repository.user_repository import UserRepository


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repository = UserRepository(session)
        self.order_history_repository = OrderHistoryRepository(session)

    async def get_user(self, user_id: int) -> User:
        user = await self.user_repository.query_id(user_id)
        if not user:
            raise NotFoundError("User not found.", details={"user_id": user_id})
        return user

    async def get_order_history(self, user_id: int) -> List[OrderHistoryEntry]:
        await self.get_user(user_id)
        return await self.order_history_repository.list_for_user(user_id)
