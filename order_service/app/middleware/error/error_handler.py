"""
Exception handlers rendering every Order Service error as
``{"error": {type, message, correlation_id, timestamp, path, method, details?}}``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...core.exceptions import OrderServiceError
from ...core.settings import get_settings
from ...utils.logging import setup_order_logging

logger = setup_order_logging("order_service.error_handler", log_level=get_settings().LOG_LEVEL)


def _correlation_id(request: Request) -> str:
    return (
        request.headers.get("X-Correlation-ID")
        or getattr(request.state, "correlation_id", None)
        or "unknown"
    )


class OrderServiceErrorHandler:
    """Client errors are logged at WARNING, server errors at ERROR with traceback."""

    @staticmethod
    def setup_error_handlers(app: FastAPI) -> None:
        @app.exception_handler(OrderServiceError)
        async def order_service_error_handler(
            request: Request, exc: OrderServiceError
        ) -> JSONResponse:
            return OrderServiceErrorHandler._create_error_response(
                request,
                status_code=exc.status_code,
                error_type=exc.error_type,
                message=exc.message,
                details=exc.details,
                exc=exc,
            )

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(
            request: Request, exc: StarletteHTTPException
        ) -> JSONResponse:
            return OrderServiceErrorHandler._create_error_response(
                request,
                status_code=exc.status_code,
                error_type="http_error",
                message=str(exc.detail),
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(
            request: Request, exc: RequestValidationError
        ) -> JSONResponse:
            error_details = [
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
                for error in exc.errors()
            ]
            return OrderServiceErrorHandler._create_error_response(
                request,
                status_code=422,
                error_type="request_validation_error",
                message="Request validation failed",
                details={"validation_errors": error_details},
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(
            request: Request, exc: Exception
        ) -> JSONResponse:
            return OrderServiceErrorHandler._create_error_response(
                request,
                status_code=500,
                error_type="internal_server_error",
                message="An internal server error occurred",
                details={"exception_type": type(exc).__name__},
                exc=exc,
            )

    @staticmethod
    def _create_error_response(
        request: Request,
        status_code: int,
        error_type: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        exc: Optional[BaseException] = None,
    ) -> JSONResponse:
        correlation_id = _correlation_id(request)
        error: Dict[str, Any] = {
            "type": error_type,
            "message": message,
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
            "method": request.method,
        }
        if details:
            error["details"] = details

        log_data = {
            "correlation_id": correlation_id,
            "status_code": status_code,
            "error_type": error_type,
            "path": request.url.path,
            "method": request.method,
        }
        if status_code >= 500:
            logger.error(f"Server error: {message}", exc_info=exc, extra=log_data)
        else:
            logger.warning(f"Client error: {error_type}", extra=log_data)

        return JSONResponse(status_code=status_code, content={"error": error})


def setup_order_error_handling(app: FastAPI) -> None:
    OrderServiceErrorHandler.setup_error_handlers(app)
    logger.info("Order Service error handling configured")
