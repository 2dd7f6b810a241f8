"""
Unit tests for User Service Error Handler.
"""

import json

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_service.app.core.exceptions import (
    NotFoundError,
    PersistenceError,
    UserServiceError,
    ValidationError,
)
from user_service.app.middleware.error.error_handler import UserServiceErrorHandler


class TestUserServiceErrorHandler:
    """Test cases for error handler."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        UserServiceErrorHandler.setup_error_handlers(app)
        return app

    def test_setup_error_handlers(self, app):
        """Test that error handlers are properly set up."""
        assert UserServiceError in app.exception_handlers
        assert StarletteHTTPException in app.exception_handlers
        assert RequestValidationError in app.exception_handlers
        assert Exception in app.exception_handlers

    @pytest.mark.parametrize(
        "exc,status_code,error_type",
        [
            (ValidationError("bad"), 400, "validation_error"),
            (NotFoundError("missing"), 404, "not_found"),
            (PersistenceError("db"), 500, "persistence_error"),
        ],
    )
    async def test_domain_errors_map_to_status(
        self, app, mock_request, exc, status_code, error_type
    ):
        handler = app.exception_handlers[UserServiceError]

        response = await handler(mock_request, exc)

        assert response.status_code == status_code
        error = json.loads(response.body)["error"]
        assert error["type"] == error_type
        assert error["correlation_id"] == "test-correlation-id"
        assert error["method"] == "GET"

    async def test_unhandled_exception_is_500(self, app, mock_request):
        handler = app.exception_handlers[Exception]

        response = await handler(mock_request, RuntimeError("boom"))

        assert response.status_code == 500
        assert json.loads(response.body)["error"]["type"] == "internal_server_error"
