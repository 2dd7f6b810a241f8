"""
FastAPI dependency injection for Product Service

Provides services, database sessions and correlation ID management.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.inventory_service import InventoryService

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


def get_inventory_service(
    session: AsyncSession = Depends(get_async_session),
) -> InventoryService:
    """Provide InventoryService instance with database"""
    return InventoryService(session)


# =====================================================
# REQUEST CONTEXT DEPENDENCIES
# =====================================================


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers or state"""
    correlation_id = (
        request.headers.get("X-Correlation-ID")
        or request.headers.get("correlation-id")
        or request.headers.get("x-request-id")
    )

    # Fallback to request state (from middleware)
    if not correlation_id:
        correlation_id = getattr(request.state, "correlation_id", None)

    return correlation_id


# =====================================================
# COMMON DEPENDENCY ALIASES
# =====================================================

CorrelationIdDep = Depends(get_correlation_id)
DatabaseDep = Depends(get_async_session)
InventoryServiceDep = Depends(get_inventory_service)
