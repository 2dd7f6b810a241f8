"""
Pytest configuration and fixtures for Product Service tests.
"""

import os
from decimal import Decimal
from typing import Any, AsyncGenerator
from unittest.mock import Mock

import httpx
import pytest
from fastapi import Request

# Set up test environment before the settings singleton is created
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENABLE_EVENT_CONSUMER", "false")

from product_service.app.core.database import ProductServiceDatabaseManager
from product_service.app.main import create_app
from product_service.app.models.product import Product
from product_service.app.services.inventory_service import InventoryService


@pytest.fixture
async def database_manager() -> AsyncGenerator[ProductServiceDatabaseManager, None]:
    manager = ProductServiceDatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.create_tables()
    async with manager.async_session_maker() as session:
        session.add_all(
            [
                Product(id=3, name="Pour-over Kettle", price=Decimal("19.99"), inventory=10),
                Product(
                    id=5,
                    name="Ceramic Dripper",
                    description="Cone dripper, size 02",
                    price=Decimal("24.00"),
                    inventory=4,
                ),
            ]
        )
        await session.commit()
    yield manager
    await manager.close()


@pytest.fixture
async def db_session(database_manager) -> AsyncGenerator[Any, None]:
    async with database_manager.async_session_maker() as session:
        yield session


@pytest.fixture
def inventory(db_session) -> InventoryService:
    return InventoryService(db_session)


@pytest.fixture
def test_app(database_manager):
    app = create_app()
    app.state.database_manager = database_manager
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
    request.url.path = "/products/3/inventory"
    request.method = "PATCH"
    request.headers = {"X-Correlation-ID": "test-correlation-id"}
    return request
