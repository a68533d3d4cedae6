"""Unit tests for the WooCommerce REST client."""

import httpx
import pytest

from profit_service.exceptions import MissingCredentialsError, RemoteApiError
from profit_service.infrastructure.woocommerce import (
    WooCommerceClient,
    probe_connection,
    validate_credentials,
)


def make_client(handler) -> WooCommerceClient:
    return WooCommerceClient(
        "https://shop.example.com/",
        "ck_key",
        "cs_secret",
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    @pytest.mark.asyncio
    async def test_auth_and_paging_params_are_sent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"id": 1}])

        async with make_client(handler) as client:
            products = await client.get_products(page=3, per_page=25)

        assert products == [{"id": 1}]
        request = seen[0]
        assert request.url.path == "/wp-json/wc/v3/products"
        assert request.url.params["consumer_key"] == "ck_key"
        assert request.url.params["consumer_secret"] == "cs_secret"
        assert request.url.params["page"] == "3"
        assert request.url.params["per_page"] == "25"
        # unset filters are not sent
        assert "after" not in request.url.params
        assert "dates_are_gmt" not in request.url.params

    @pytest.mark.asyncio
    async def test_order_filters(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            await client.get_orders(page=1, after="2024-01-01T00:00:00", status="completed")

        assert seen[0].url.path == "/wp-json/wc/v3/orders"
        assert seen[0].url.params["after"] == "2024-01-01T00:00:00"
        assert seen[0].url.params["dates_are_gmt"] == "true"
        assert seen[0].url.params["status"] == "completed"

    @pytest.mark.asyncio
    async def test_variations_endpoint(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            await client.get_product_variations(77, page=2, per_page=10)

        assert seen[0].url.path == "/wp-json/wc/v3/products/77/variations"
        assert seen[0].url.params["page"] == "2"


class TestErrors:
    @pytest.mark.asyncio
    async def test_non_success_status_raises_with_status_and_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="Invalid signature")

        async with make_client(handler) as client:
            with pytest.raises(RemoteApiError) as exc_info:
                await client.get_orders()

        assert exc_info.value.status == 401
        assert exc_info.value.message == "WooCommerce API error: 401 - Invalid signature"

    @pytest.mark.asyncio
    async def test_transport_failure_raises_without_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(RemoteApiError) as exc_info:
                await client.get_products()

        assert exc_info.value.status is None
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with make_client(handler) as client:
            with pytest.raises(RemoteApiError):
                await client.get_products()

    @pytest.mark.asyncio
    async def test_list_endpoint_returning_object_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"code": "unexpected"})

        async with make_client(handler) as client:
            with pytest.raises(RemoteApiError):
                await client.get_products()


class TestConnection:
    def test_validate_credentials_lists_missing_fields(self) -> None:
        with pytest.raises(MissingCredentialsError) as exc_info:
            validate_credentials("https://shop.example.com", "", "   ")

        assert exc_info.value.missing == ["consumer_key", "consumer_secret"]
        assert exc_info.value.message == "Missing required fields: consumer_key, consumer_secret"

    @pytest.mark.asyncio
    async def test_probe_rejects_missing_fields_before_any_request(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        with pytest.raises(MissingCredentialsError):
            await probe_connection(None, "ck", "cs", transport=httpx.MockTransport(handler))

        assert calls == []

    @pytest.mark.asyncio
    async def test_probe_success(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/wp-json/wc/v3/system_status"
            return httpx.Response(200, json={"environment": {}})

        assert await probe_connection(
            "https://shop.example.com", "ck", "cs", transport=httpx.MockTransport(handler)
        ) is True

    @pytest.mark.asyncio
    async def test_probe_failure_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"code": "woocommerce_rest_cannot_view"})

        assert await probe_connection(
            "https://shop.example.com", "ck", "bad", transport=httpx.MockTransport(handler)
        ) is False
