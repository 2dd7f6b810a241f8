"""
Pytest configuration and fixtures for user service tests.
"""

import os
from datetime import datetime
from typing import Any, AsyncGenerator, Dict
from unittest.mock import Mock

import httpx
import pytest
from fastapi import Request

# Set up test environment before the settings singleton is created
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENABLE_EVENT_CONSUMER", "false")

from user_service.app.core.database import UserServiceDatabaseManager
from user_service.app.events.base import BaseEvent
from user_service.app.main import create_app
from user_service.app.models.user import User
from user_service.app.services.order_history_service import OrderHistoryService


@pytest.fixture
async def database_manager() -> AsyncGenerator[UserServiceDatabaseManager, None]:
    manager = UserServiceDatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.create_tables()
    async with manager.async_session_maker() as session:
        session.add_all(
            [
                User(id=42, username="john_doe", email="john@example.com"),
                User(id=43, username="jane_smith", email="jane@example.com"),
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
def order_history(db_session) -> OrderHistoryService:
    return OrderHistoryService(db_session)


@pytest.fixture
def order_update_event():
    """Build an order_update envelope the way the order component publishes it."""

    def _build(order_id: int = 1, status: str = "pending", **data: Any) -> BaseEvent:
        payload: Dict[str, Any] = {
            "user_id": 42,
            "order_id": order_id,
            "total": "63.98",
            "status": status,
            "created_at": datetime(2024, 1, 1, 12, 0, order_id).isoformat(),
        }
        payload.update(data)
        return BaseEvent(
            event_id=f"order-{order_id}-{status}",
            event_type="order_update",
            source_service="order-service",
            data=payload,
        )

    return _build


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
    request.url.path = "/users/42"
    request.method = "GET"
    request.headers = {"X-Correlation-ID": "test-correlation-id"}
    return request
