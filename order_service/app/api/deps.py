"""
FastAPI dependency injection for Order Service

Provides services, database sessions and correlation ID management. The
collaborators themselves are created in the application lifespan and kept
on ``app.state``.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..events.producers import OrderEventProducer
from ..services.order_service import OrderService
from ..utils.service_clients import ProductCatalog, UserDirectory

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Provide async database session"""
    async for session in request.app.state.database_manager.get_async_session():
        yield session


# =====================================================
# COLLABORATOR DEPENDENCIES
# =====================================================


def get_order_event_producer(request: Request) -> Optional[OrderEventProducer]:
    """Provide OrderEventProducer instance"""
    return getattr(request.app.state, "event_producer", None)


def get_product_client(request: Request) -> ProductCatalog:
    return request.app.state.product_client


def get_user_client(request: Request) -> UserDirectory:
    return request.app.state.user_client


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_order_service(
    session: AsyncSession = Depends(get_async_session),
    product_client: ProductCatalog = Depends(get_product_client),
    user_client: UserDirectory = Depends(get_user_client),
    event_producer: Optional[OrderEventProducer] = Depends(get_order_event_producer),
) -> OrderService:
    """Provide OrderService instance with database and event publishing"""
    return OrderService(session, product_client, user_client, event_producer)


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
OrderServiceDep = Depends(get_order_service)
OrderEventProducerDep = Depends(get_order_event_producer)
