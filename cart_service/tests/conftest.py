"""
Pytest configuration and fixtures for Cart Service tests.
"""

import os
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import pytest

# Set up test environment before the settings singleton is created
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENABLE_EVENT_PUBLISHING", "false")
os.environ.setdefault("ENABLE_CART_SWEEPER", "false")

from cart_service.app.core.database import CartServiceDatabaseManager
from cart_service.app.core.exceptions import UpstreamServiceError, ValidationError
from cart_service.app.events.base import BaseEvent, EventPublisher
from cart_service.app.events.producers import CartEventProducer
from cart_service.app.main import create_app
from cart_service.app.services.cart_service import CartService
from cart_service.app.services.checkout_service import CheckoutService
from cart_service.app.utils.service_clients import (
    OrderGateway,
    ProductCatalog,
    ProductSnapshot,
    UserDirectory,
)


class FakeProductCatalog(ProductCatalog):
    def __init__(self):
        self.products: Dict[int, ProductSnapshot] = {}
        self.unavailable = False

    def add_product(
        self, product_id: int, name: str, price: str, inventory: int
    ) -> ProductSnapshot:
        product = ProductSnapshot(
            id=product_id, name=name, price=Decimal(price), inventory=inventory
        )
        self.products[product_id] = product
        return product

    async def get_product(self, product_id: int) -> Optional[ProductSnapshot]:
        if self.unavailable:
            raise UpstreamServiceError("Product service is unavailable")
        return self.products.get(product_id)


class FakeUserDirectory(UserDirectory):
    def __init__(self, user_ids=()):
        self.user_ids = set(user_ids)

    async def user_exists(self, user_id: int) -> bool:
        return user_id in self.user_ids


class FakeOrderGateway(OrderGateway):
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self._orders_by_key: Dict[str, Dict[str, Any]] = {}

    async def create_order(
        self,
        user_id: int,
        items: List[Dict[str, int]],
        idempotency_key: str,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        self.calls.append(
            {"user_id": user_id, "items": items, "idempotency_key": idempotency_key}
        )
        if self.error is not None:
            raise self.error
        if idempotency_key not in self._orders_by_key:
            self._orders_by_key[idempotency_key] = {
                "id": len(self._orders_by_key) + 1,
                "user_id": user_id,
                "status": "pending",
                "items": items,
            }
        return self._orders_by_key[idempotency_key]

    def reject_with(self, message: str) -> None:
        self.error = ValidationError(message)


class RecordingPublisher(EventPublisher):
    def __init__(self):
        self.published: List[Dict[str, Any]] = []
        self.fail = False

    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.published.append({"topic": topic, "event": event})

    def event_types(self) -> List[str]:
        return [entry["event"].event_type for entry in self.published]


@pytest.fixture
async def database_manager() -> AsyncGenerator[CartServiceDatabaseManager, None]:
    manager = CartServiceDatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
async def db_session(database_manager) -> AsyncGenerator[Any, None]:
    async with database_manager.async_session_maker() as session:
        yield session


@pytest.fixture
def product_catalog() -> FakeProductCatalog:
    catalog = FakeProductCatalog()
    catalog.add_product(7, "Espresso Beans", "12.50", inventory=10)
    catalog.add_product(3, "Pour-over Kettle", "19.99", inventory=5)
    return catalog


@pytest.fixture
def user_directory() -> FakeUserDirectory:
    return FakeUserDirectory(user_ids={42, 43})


@pytest.fixture
def order_gateway() -> FakeOrderGateway:
    return FakeOrderGateway()


@pytest.fixture
def event_publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def event_producer(event_publisher) -> CartEventProducer:
    return CartEventProducer(event_publisher, topic="cart_events")


@pytest.fixture
def cart_store(db_session, product_catalog, user_directory, event_producer) -> CartService:
    return CartService(db_session, product_catalog, user_directory, event_producer)


@pytest.fixture
def checkout(db_session, product_catalog, order_gateway, event_producer) -> CheckoutService:
    return CheckoutService(db_session, product_catalog, order_gateway, event_producer)


@pytest.fixture
def test_app(database_manager, product_catalog, user_directory, order_gateway, event_producer):
    app = create_app()
    app.state.database_manager = database_manager
    app.state.product_client = product_catalog
    app.state.user_client = user_directory
    app.state.order_client = order_gateway
    app.state.event_producer = event_producer
    return app


@pytest.fixture
async def client(test_app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
