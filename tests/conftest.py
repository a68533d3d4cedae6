"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from profit_service.config import Settings, get_settings
from profit_service.infrastructure.database.connection import (
    get_async_session_factory,
    get_session,
)
from profit_service.infrastructure.database.models import Base, Website
from profit_service.infrastructure.redis import get_redis
from profit_service.infrastructure.woocommerce import WooCommerceClient
from profit_service.main import create_app

SQLITE_URL = "sqlite+aiosqlite://"


@dataclass
class FakeStore:
    """In-memory WooCommerce store served through ``httpx.MockTransport``.

    ``failures`` maps a resource path (``"orders"``, ``"products/7/variations"``)
    to a status code returned instead of data.
    """

    products: list[dict[str, Any]] = field(default_factory=list)
    variations: dict[int, list[dict[str, Any]]] = field(default_factory=dict)
    orders: list[dict[str, Any]] = field(default_factory=list)
    failures: dict[str, int] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def _resources(self, resource: str) -> list[dict[str, Any]] | None:
        if resource == "products":
            return self.products
        if resource == "orders":
            return self.orders
        parts = resource.split("/")
        if len(parts) == 3 and parts[0] == "products" and parts[2] == "variations":
            return self.variations.get(int(parts[1]), [])
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        resource = request.url.path.split("/wp-json/wc/v3/", 1)[1]

        if resource in self.failures:
            return httpx.Response(self.failures[resource], text="Internal Server Error")
        if resource == "system_status":
            return httpx.Response(200, json={"environment": {}})

        items = self._resources(resource)
        if items is None:
            return httpx.Response(404, json={"code": "rest_no_route"})

        page = int(request.url.params.get("page", 1))
        per_page = int(request.url.params.get("per_page", 50))
        start = (page - 1) * per_page
        return httpx.Response(200, json=items[start : start + per_page])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [request.url.path.split("/wp-json/wc/v3/", 1)[1] for request in self.requests]


@pytest.fixture
def test_settings() -> Settings:
    """Get test settings with overrides."""
    return Settings(
        app_env="test",
        debug=False,
        database_url_override=SQLITE_URL,
        redis_host="localhost",
        redis_port=6379,
        woocommerce_page_size=2,
        sync_page_delay_seconds=0.0,
        sync_timeout_seconds=60.0,
        sync_lock_ttl_seconds=120,
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every connection of a test."""
    engine = create_async_engine(
        SQLITE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> Any:
    return get_async_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory: Any) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def website(session: AsyncSession) -> Website:
    """A connected store."""
    website = Website(
        name="Test Store",
        base_url="https://shop.example.com",
        consumer_key="ck_test",
        consumer_secret="cs_test",
        currency="USD",
        sync_enabled=True,
        last_sync_at=None,
    )
    session.add(website)
    await session.commit()
    return website


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def client_factory(fake_store: FakeStore, test_settings: Settings) -> Any:
    """Builds WooCommerce clients that talk to ``fake_store``."""

    def factory(website: Website) -> WooCommerceClient:
        return WooCommerceClient.for_website(
            website, test_settings, transport=fake_store.transport
        )

    return factory


@pytest.fixture
def app(test_settings: Settings, session_factory: Any) -> Any:
    """Create test application backed by the in-memory database, without Redis."""

    def get_test_settings() -> Settings:
        return test_settings

    async def get_test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def get_test_redis() -> None:
        return None

    app = create_app()
    app.dependency_overrides[get_settings] = get_test_settings
    app.dependency_overrides[get_session] = get_test_session
    app.dependency_overrides[get_redis] = get_test_redis
    return app


@pytest.fixture
def client(app: Any) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create asynchronous test client on the test's event loop."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
