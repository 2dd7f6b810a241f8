"""
FastAPI dependency injection for Cart Service

Collaborators (database manager, service clients, event producer) are built
in the application lifespan and kept on ``app.state``; the dependencies below
hand them to the request-scoped services.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.settings import get_settings
from ..events.producers import CartEventProducer
from ..services.cart_service import CartService
from ..services.checkout_service import CheckoutService
from ..utils.service_clients import OrderGateway, ProductCatalog, UserDirectory

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


def get_product_client(request: Request) -> ProductCatalog:
    return request.app.state.product_client


def get_user_client(request: Request) -> UserDirectory:
    return request.app.state.user_client


def get_order_client(request: Request) -> OrderGateway:
    return request.app.state.order_client


def get_cart_event_producer(request: Request) -> Optional[CartEventProducer]:
    """Provide CartEventProducer instance, None when publishing is disabled"""
    return getattr(request.app.state, "event_producer", None)


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_cart_service(
    session: AsyncSession = Depends(get_async_session),
    product_client: ProductCatalog = Depends(get_product_client),
    user_client: UserDirectory = Depends(get_user_client),
    event_producer: Optional[CartEventProducer] = Depends(get_cart_event_producer),
) -> CartService:
    return CartService(
        session,
        product_client,
        user_client,
        event_producer,
        cart_ttl_days=get_settings().CART_TTL_DAYS,
    )


def get_checkout_service(
    session: AsyncSession = Depends(get_async_session),
    product_client: ProductCatalog = Depends(get_product_client),
    order_client: OrderGateway = Depends(get_order_client),
    event_producer: Optional[CartEventProducer] = Depends(get_cart_event_producer),
) -> CheckoutService:
    return CheckoutService(session, product_client, order_client, event_producer)


# =====================================================
# REQUEST CONTEXT DEPENDENCIES
# =====================================================


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers or state"""
    return (
        request.headers.get("X-Correlation-ID")
        or request.headers.get("x-request-id")
        or getattr(request.state, "correlation_id", None)
    )


# =====================================================
# COMMON DEPENDENCY ALIASES
# =====================================================

CorrelationIdDep = Depends(get_correlation_id)
CartServiceDep = Depends(get_cart_service)
CheckoutServiceDep = Depends(get_checkout_service)
