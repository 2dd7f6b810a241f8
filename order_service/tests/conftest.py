"""
Pytest configuration and fixtures for Order Service tests.
"""

import os
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict, List, Optional
from unittest.mock import Mock

import httpx
import pytest
from fastapi import Request

# Set up test environment before the settings singleton is created
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENABLE_EVENT_PUBLISHING", "false")

from order_service.app.core.database import OrderServiceDatabaseManager
from order_service.app.core.exceptions import UpstreamServiceError
from order_service.app.events.base import BaseEvent, EventPublisher
from order_service.app.events.producers import OrderEventProducer
from order_service.app.main import create_app
from order_service.app.services.order_service import OrderService
from order_service.app.utils.service_clients import (
    ProductCatalog,
    ProductSnapshot,
    UserDirectory,
)


class FakeProductCatalog(ProductCatalog):
    def __init__(self):
        self.products: Dict[int, ProductSnapshot] = {}
        self.unreachable_ids = set()

    def add_product(self, product_id: int, name: str, price: str, inventory: int) -> None:
        self.products[product_id] = ProductSnapshot(
            id=product_id, name=name, price=Decimal(price), inventory=inventory
        )

    async def get_product(self, product_id: int) -> Optional[ProductSnapshot]:
        if product_id in self.unreachable_ids:
            raise UpstreamServiceError("Product service is unavailable")
        return self.products.get(product_id)


class FakeUserDirectory(UserDirectory):
    def __init__(self, user_ids=()):
        self.user_ids = set(user_ids)

    async def user_exists(self, user_id: int) -> bool:
        return user_id in self.user_ids


class RecordingPublisher(EventPublisher):
    def __init__(self):
        self.published: List[Dict[str, Any]] = []
        self.fail = False

    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.published.append({"topic": topic, "event": event})

    def on_topic(self, topic: str) -> List[BaseEvent]:
        return [entry["event"] for entry in self.published if entry["topic"] == topic]


@pytest.fixture
async def database_manager() -> AsyncGenerator[OrderServiceDatabaseManager, None]:
    manager = OrderServiceDatabaseManager("sqlite+aiosqlite:///:memory:")
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
    catalog.add_product(3, "Pour-over Kettle", "19.99", inventory=10)
    catalog.add_product(5, "Ceramic Dripper", "24.00", inventory=4)
    return catalog


@pytest.fixture
def user_directory() -> FakeUserDirectory:
    return FakeUserDirectory(user_ids={42})


@pytest.fixture
def event_publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def event_producer(event_publisher) -> OrderEventProducer:
    return OrderEventProducer(event_publisher)


@pytest.fixture
def order_engine(db_session, product_catalog, user_directory, event_producer) -> OrderService:
    return OrderService(db_session, product_catalog, user_directory, event_producer)


@pytest.fixture
def test_app(database_manager, product_catalog, user_directory, event_producer):
    app = create_app()
    app.state.database_manager = database_manager
    app.state.product_client = product_catalog
    app.state.user_client = user_directory
    app.state.event_producer = event_producer
    return app


@pytest.fixture
async def client(test_app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_request():
    """Mock FastAPI Request object."""
    request = Mock(spec=Request)
    request.url.path = "/orders"
    request.method = "POST"
    request.headers = {"X-Correlation-ID": "test-correlation-id"}
    return request
