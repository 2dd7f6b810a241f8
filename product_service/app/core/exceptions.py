"""
Product Service domain errors.
"""

from typing import Any, Dict, Optional


class ProductServiceError(Exception):
    status_code = 500
    error_type = "product_service_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ProductServiceError):
    status_code = 400
    error_type = "validation_error"


class NotFoundError(ProductServiceError):
    status_code = 404
    error_type = "not_found"


class PersistenceError(ProductServiceError):
    status_code = 500
    error_type = "persistence_error"
