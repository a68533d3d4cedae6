"""Async WooCommerce REST client.

Pure transport and pagination: no business logic and no retries. Every
request carries the store's consumer key/secret as query parameters.
"""

from typing import TYPE_CHECKING, Any

import httpx
import structlog

from profit_service.exceptions import MissingCredentialsError, RemoteApiError
from shared.constants import REMOTE_PAGE_SIZE, WOOCOMMERCE_API_PATH

if TYPE_CHECKING:
    from profit_service.config import Settings
    from profit_service.infrastructure.database.models import Website

logger = structlog.get_logger()


def validate_credentials(base_url: str | None, consumer_key: str | None, consumer_secret: str | None) -> None:
    """Raise MissingCredentialsError if any credential field is blank."""
    fields = {
        "base_url": base_url,
        "consumer_key": consumer_key,
        "consumer_secret": consumer_secret,
    }
    missing = [name for name, value in fields.items() if not (value and value.strip())]
    if missing:
        raise MissingCredentialsError(missing)


def _after_filter(after: str | None) -> dict[str, Any]:
    """``after`` is naive UTC, so the store must not read it as local time."""
    if after is None:
        return {}
    return {"after": after, "dates_are_gmt": "true"}


class WooCommerceClient:
    """Client for one store's WooCommerce v3 API."""

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self._http = httpx.AsyncClient(
            base_url=f"{self.base_url}{WOOCOMMERCE_API_PATH}/",
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @classmethod
    def for_website(
        cls,
        website: "Website",
        settings: "Settings",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "WooCommerceClient":
        """Build a client from a website's stored credentials."""
        return cls(
            base_url=website.base_url,
            consumer_key=website.consumer_key,
            consumer_secret=website.consumer_secret,
            timeout=settings.woocommerce_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "WooCommerceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    async def request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET an endpoint and return the decoded JSON body.

        Raises:
            RemoteApiError: on transport failure, non-2xx status or a body
                that is not JSON.
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        query["consumer_key"] = self._consumer_key
        query["consumer_secret"] = self._consumer_secret
        url = f"{self.base_url}{WOOCOMMERCE_API_PATH}/{endpoint.lstrip('/')}"

        try:
            response = await self._http.get(endpoint.lstrip("/"), params=query)
        except httpx.HTTPError as e:
            logger.warning("WooCommerce request failed", url=url, error=str(e))
            raise RemoteApiError(None, str(e) or e.__class__.__name__, url=url) from e

        logger.debug(
            "WooCommerce request",
            url=url,
            status=response.status_code,
            page=query.get("page"),
        )

        if not response.is_success:
            logger.warning(
                "WooCommerce API error", url=url, status=response.status_code
            )
            raise RemoteApiError(response.status_code, response.text, url=url)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteApiError(response.status_code, "Invalid JSON response", url=url) from e

    async def fetch_page(
        self,
        resource: str,
        page: int,
        page_size: int = REMOTE_PAGE_SIZE,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch one page of a list endpoint.

        A page shorter than ``page_size`` is the last one.
        """
        params = {**(filters or {}), "page": page, "per_page": page_size}
        data = await self.request(resource, params)
        if not isinstance(data, list):
            raise RemoteApiError(
                200, f"Expected a list from {resource}, got {type(data).__name__}"
            )
        return data

    async def get_products(
        self, page: int = 1, per_page: int = REMOTE_PAGE_SIZE, after: str | None = None
    ) -> list[dict[str, Any]]:
        return await self.fetch_page("products", page, per_page, _after_filter(after))

    async def get_product(self, product_id: int) -> dict[str, Any]:
        return await self.request(f"products/{product_id}")

    async def get_product_variations(
        self, product_id: int, page: int = 1, per_page: int = REMOTE_PAGE_SIZE
    ) -> list[dict[str, Any]]:
        return await self.fetch_page(f"products/{product_id}/variations", page, per_page)

    async def get_orders(
        self,
        page: int = 1,
        per_page: int = REMOTE_PAGE_SIZE,
        after: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        return await self.fetch_page(
            "orders", page, per_page, {**_after_filter(after), "status": status}
        )

    async def get_order(self, order_id: int) -> dict[str, Any]:
        return await self.request(f"orders/{order_id}")

    async def test_connection(self) -> bool:
        """Probe the store with one lightweight call."""
        try:
            await self.request("system_status")
            return True
        except RemoteApiError as e:
            logger.info("WooCommerce connection test failed", base_url=self.base_url, error=e.message)
            return False


async def probe_connection(
    base_url: str | None,
    consumer_key: str | None,
    consumer_secret: str | None,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Check credentials before they are persisted.

    Raises:
        MissingCredentialsError: before any network call when a field is blank.
    """
    validate_credentials(base_url, consumer_key, consumer_secret)
    async with WooCommerceClient(
        base_url, consumer_key, consumer_secret, timeout=timeout, transport=transport
    ) as client:
        return await client.test_connection()
