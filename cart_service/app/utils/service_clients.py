"""
HTTP clients for the services the Cart Service depends on.

Catalog lookups and user checks are synchronous calls to the Product and
User services; checkout hands the cart to the Order Service. Each client
sits behind a small abstract interface so the business services can be
exercised with in-process fakes.
"""

import asyncio
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from ..core.exceptions import UpstreamServiceError, ValidationError
from ..core.settings import get_settings
from .logging import setup_cart_logging

logger = setup_cart_logging(
    "cart_service.service_clients", log_level=get_settings().LOG_LEVEL
)


class ProductSnapshot(BaseModel):
    """Catalog view of a product at lookup time."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    price: Decimal
    inventory: int


class ProductCatalog(ABC):
    @abstractmethod
    async def get_product(self, product_id: int) -> Optional[ProductSnapshot]:
        """Return the product, or None when the catalog does not know it."""


class UserDirectory(ABC):
    @abstractmethod
    async def user_exists(self, user_id: int) -> bool:
        """Return True when the user is registered."""


class OrderGateway(ABC):
    @abstractmethod
    async def create_order(
        self,
        user_id: int,
        items: List[Dict[str, int]],
        idempotency_key: str,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an order and return its representation."""


class _ServiceClient:
    """Shared request plumbing: timeout, bounded retry with backoff."""

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        retries: int = 2,
        retry_delay: float = 0.2,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.retry_delay = retry_delay
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        for attempt in range(self.retries + 1):
            try:
                return await self.client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt >= self.retries:
                    logger.error(
                        f"{self.service_name} unreachable",
                        extra={
                            "url": url,
                            "method": method,
                            "attempts": attempt + 1,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        },
                    )
                    raise UpstreamServiceError(
                        f"{self.service_name} is unavailable",
                        details={"url": url},
                    ) from e

                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"{self.service_name} request failed, retrying in {delay}s",
                    extra={"url": url, "attempt": attempt + 1, "error": str(e)},
                )
                await asyncio.sleep(delay)

        raise AssertionError("unreachable")

    def _unexpected(self, response: httpx.Response) -> UpstreamServiceError:
        logger.error(
            f"Unexpected response from {self.service_name}",
            extra={
                "status_code": response.status_code,
                "url": str(response.request.url),
            },
        )
        return UpstreamServiceError(
            f"{self.service_name} returned status {response.status_code}",
            details={"status_code": response.status_code},
        )

    async def close(self) -> None:
        """Close the HTTP client"""
        await self.client.aclose()


class ProductClient(_ServiceClient, ProductCatalog):
    service_name = "Product service"

    async def get_product(self, product_id: int) -> Optional[ProductSnapshot]:
        response = await self._request("GET", f"/products/{product_id}")
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise self._unexpected(response)
        return ProductSnapshot.model_validate(response.json())


class UserClient(_ServiceClient, UserDirectory):
    service_name = "User service"

    async def user_exists(self, user_id: int) -> bool:
        response = await self._request("GET", f"/users/{user_id}")
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise self._unexpected(response)


class OrderClient(_ServiceClient, OrderGateway):
    service_name = "Order service"

    async def create_order(
        self,
        user_id: int,
        items: List[Dict[str, int]],
        idempotency_key: str,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers = {"Idempotency-Key": idempotency_key}
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        # Retrying is safe because the idempotency key dedups on the order side
        response = await self._request(
            "POST",
            "/orders",
            json={"user_id": user_id, "items": items},
            headers=headers,
        )

        if response.status_code in (200, 201):
            return response.json()
        if 400 <= response.status_code < 500:
            message = _error_message(response) or "Order was rejected"
            raise ValidationError(
                message, details={"order_service_status": response.status_code}
            )
        raise self._unexpected(response)


def _error_message(response: httpx.Response) -> Optional[str]:
    """Pull the human-readable message out of another service's error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("detail"):
            return str(body["detail"])
    return None
