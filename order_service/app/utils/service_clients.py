"""
HTTP clients for the services the Order Service validates against.

Order validation looks up every product and the ordering user over HTTP.
The abstract interfaces let the order engine run against in-process fakes.
"""

import asyncio
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from ..core.exceptions import UpstreamServiceError
from ..core.settings import get_settings
from .logging import setup_order_logging

logger = setup_order_logging(
    "order_service.service_clients", log_level=get_settings().LOG_LEVEL
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


