"""
FastAPI dependency injection for User Service

Provides services and database sessions. The database manager itself is
created in the application lifespan and kept on ``app.state``.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.user_service import UserService

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Provide async database session"""
    async for session in request.app.state.database_manager.get_async_session():
        yield session


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_user_service(session: AsyncSession = Depends(get_async_session)) -> UserService:
    return UserService(session)


# =====================================================
# COMMON DEPENDENCY ALIASES
# =====================================================

DatabaseDep = Depends(get_async_session)
UserServiceDep = Depends(get_user_service)
