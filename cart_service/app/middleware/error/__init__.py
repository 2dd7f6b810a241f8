"""
Error middleware for Cart Service.
"""

from .error_handler import CartServiceErrorHandler, setup_cart_error_handling

__all__ = ["CartServiceErrorHandler", "setup_cart_error_handling"]
