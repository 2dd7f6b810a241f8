"""
Unit tests for Order Service Error Handler.
"""

import json

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from order_service.app.core.exceptions import (
    ConflictError,
    InsufficientInventoryError,
    InvalidUserError,
    NotFoundError,
    OrderServiceError,
    PersistenceError,
    UpstreamServiceError,
    ValidationError,
)
from order_service.app.middleware.error.error_handler import OrderServiceErrorHandler


class TestOrderServiceErrorHandler:
    """Test cases for error handler."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        OrderServiceErrorHandler.setup_error_handlers(app)
        return app

    def test_setup_error_handlers(self, app):
        """Test that error handlers are properly set up."""
        assert OrderServiceError in app.exception_handlers
        assert StarletteHTTPException in app.exception_handlers
        assert RequestValidationError in app.exception_handlers
        assert Exception in app.exception_handlers

    @pytest.mark.parametrize(
        "exc,status_code,error_type",
        [
            (ValidationError("bad"), 400, "validation_error"),
            (InvalidUserError("Invalid user ID"), 400, "invalid_user"),
            (InsufficientInventoryError("short"), 400, "insufficient_inventory"),
            (NotFoundError("missing"), 404, "not_found"),
            (ConflictError("illegal"), 409, "conflict"),
            (UpstreamServiceError("down"), 502, "upstream_service_error"),
            (PersistenceError("db"), 500, "persistence_error"),
        ],
    )
    async def test_domain_errors_map_to_status(
        self, app, mock_request, exc, status_code, error_type
    ):
        handler = app.exception_handlers[OrderServiceError]

        response = await handler(mock_request, exc)

        assert response.status_code == status_code
        error = json.loads(response.body)["error"]
        assert error["type"] == error_type
        assert error["message"] == exc.message
        assert error["correlation_id"] == "test-correlation-id"
        assert error["path"] == "/orders"
        assert error["method"] == "POST"

    async def test_details_are_included(self, app, mock_request):
        handler = app.exception_handlers[OrderServiceError]
        exc = ValidationError("bad lines", details={"problems": [{"product_id": 1}]})

        response = await handler(mock_request, exc)

        assert json.loads(response.body)["error"]["details"] == {
            "problems": [{"product_id": 1}]
        }

    async def test_http_exception_handler(self, app, mock_request):
        handler = app.exception_handlers[StarletteHTTPException]

        response = await handler(
            mock_request, StarletteHTTPException(status_code=405, detail="Method Not Allowed")
        )

        assert response.status_code == 405
        assert json.loads(response.body)["error"]["type"] == "http_error"

    async def test_request_validation_error_handler(self, app, mock_request):
        handler = app.exception_handlers[RequestValidationError]
        exc = RequestValidationError(
            [{"loc": ["body", "items"], "msg": "Field required", "type": "missing"}]
        )

        response = await handler(mock_request, exc)

        assert response.status_code == 422
        details = json.loads(response.body)["error"]["details"]
        assert details["validation_errors"][0]["field"] == "body.items"

    async def test_unhandled_exception_is_500(self, app, mock_request):
        handler = app.exception_handlers[Exception]

        response = await handler(mock_request, RuntimeError("boom"))

        assert response.status_code == 500
        error = json.loads(response.body)["error"]
        assert error["type"] == "internal_server_error"
        assert "boom" not in error["message"]
