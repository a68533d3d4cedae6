"""Unit tests for the cost ledger endpoints."""

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.infrastructure.database.models import Product, Variant, Website


@pytest_asyncio.fixture
async def variant_id(session: AsyncSession, website: Website) -> int:
    product = Product(
        website_id=website.id, external_product_id=10, name="Mug",
        sku="MUG", type="simple", status="publish", deleted_at=None,
    )
    session.add(product)
    await session.flush()
    variant = Variant(
        product_id=product.id, website_id=website.id, external_variation_id=None,
        sku="MUG", attributes={}, price_regular=Decimal("15.00"), price_sale=None,
        sale_date_from=None, sale_date_to=None, deleted_at=None,
    )
    session.add(variant)
    await session.commit()
    return variant.id


@pytest.mark.asyncio
async def test_record_and_resolve_costs(async_client: AsyncClient, variant_id: int) -> None:
    response = await async_client.post(
        f"/api/v1/costs/{variant_id}",
        json={"amount": "5", "effective_from": "2024-01-01T00:00:00"},
    )
    assert response.status_code == 201
    assert response.json()["cost_amount"] == "5.00"

    await async_client.post(
        f"/api/v1/costs/{variant_id}",
        json={"amount": "7.00", "effective_from": "2024-04-01T00:00:00", "actor": "ops"},
    )

    response = await async_client.get(
        f"/api/v1/costs/{variant_id}/current", params={"at": "2024-03-10T12:00:00"}
    )
    assert response.status_code == 200
    assert response.json()["cost_amount"] == "5.00"

    response = await async_client.get(f"/api/v1/costs/{variant_id}/current")
    assert response.json()["cost_amount"] == "7.00"

    response = await async_client.get(f"/api/v1/costs/{variant_id}/history")
    assert [entry["cost_amount"] for entry in response.json()] == ["5.00", "7.00"]


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["-1", "free"])
async def test_invalid_cost_is_400(async_client: AsyncClient, variant_id: int, amount: str) -> None:
    response = await async_client.post(f"/api/v1/costs/{variant_id}", json={"amount": amount})

    assert response.status_code == 400
    history = await async_client.get(f"/api/v1/costs/{variant_id}/history")
    assert history.json() == []


@pytest.mark.asyncio
async def test_unknown_variant_is_404(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/v1/costs/999", json={"amount": "1"})
    assert response.status_code == 404
