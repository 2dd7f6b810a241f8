"""
Cart Service domain errors.

Every error carries the HTTP status and error type the error handler
renders it with, so services raise them without knowing about FastAPI.
"""

from typing import Any, Dict, Optional


class CartServiceError(Exception):
    status_code = 500
    error_type = "cart_service_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(CartServiceError):
    status_code = 400
    error_type = "validation_error"


class InvalidUserError(ValidationError):
    error_type = "invalid_user"


class InsufficientInventoryError(ValidationError):
    error_type = "insufficient_inventory"


class NotFoundError(CartServiceError):
    status_code = 404
    error_type = "not_found"


class ConflictError(CartServiceError):
    status_code = 409
    error_type = "conflict"


class UpstreamServiceError(CartServiceError):
    status_code = 502
    error_type = "upstream_service_error"


class PersistenceError(CartServiceError):
    status_code = 500
    error_type = "persistence_error"
