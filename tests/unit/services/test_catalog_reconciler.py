"""Unit tests for catalog reconciliation."""

from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.infrastructure.database.models import Product, Variant, Website
from profit_service.services.catalog_reconciler import (
    CatalogReconciler,
    attributes_to_mapping,
    pricing_fields,
)


class FakeCatalogClient:
    """Serves variations from memory and records the pages asked for."""

    def __init__(self, variations: dict[int, list[dict[str, Any]]] | None = None):
        self.variations = variations or {}
        self.calls: list[tuple[int, int, int]] = []

    async def get_product_variations(
        self, product_id: int, page: int = 1, per_page: int = 50
    ) -> list[dict[str, Any]]:
        self.calls.append((product_id, page, per_page))
        items = self.variations.get(product_id, [])
        start = (page - 1) * per_page
        return items[start : start + per_page]


def simple_product(**overrides: Any) -> dict[str, Any]:
    payload = {
        "id": 10,
        "name": "Mug",
        "sku": "MUG-1",
        "type": "simple",
        "status": "publish",
        "regular_price": "12.50",
        "sale_price": "",
    }
    payload.update(overrides)
    return payload


def variation(external_id: int, size: str, price: str) -> dict[str, Any]:
    return {
        "id": external_id,
        "sku": f"TEE-{size}",
        "regular_price": price,
        "sale_price": "",
        "attributes": [{"id": 1, "name": "Size", "option": size}],
    }


async def variants_of(session: AsyncSession, product: Product) -> list[Variant]:
    result = await session.execute(
        select(Variant).where(Variant.product_id == product.id).order_by(Variant.id)
    )
    return list(result.scalars().all())


class TestHelpers:
    def test_attributes_to_mapping(self) -> None:
        assert attributes_to_mapping(
            [{"name": "Size", "option": "L"}, {"name": "Color", "option": "Red"}, {"option": "x"}]
        ) == {"Size": "L", "Color": "Red"}
        assert attributes_to_mapping(None) == {}

    def test_pricing_fields_empty_sale_price_is_none(self) -> None:
        fields = pricing_fields({"regular_price": "10", "sale_price": ""})
        assert fields["price_regular"] == Decimal("10.00")
        assert fields["price_sale"] is None
        assert fields["sale_date_from"] is None

    def test_pricing_fields_prefers_gmt_sale_dates(self) -> None:
        fields = pricing_fields(
            {
                "regular_price": "10",
                "sale_price": "8",
                "date_on_sale_from": "2024-05-01T02:00:00",
                "date_on_sale_from_gmt": "2024-05-01T00:00:00",
                "date_on_sale_to": "2024-05-31T23:59:59",
            }
        )
        assert fields["price_sale"] == Decimal("8.00")
        assert fields["sale_date_from"] == datetime(2024, 5, 1, 0, 0)
        assert fields["sale_date_to"] == datetime(2024, 5, 31, 23, 59, 59)


class TestReconcile:
    @pytest.mark.asyncio
    async def test_simple_product_gets_one_null_variation_variant(
        self, session: AsyncSession, website: Website
    ) -> None:
        reconciler = CatalogReconciler(session, FakeCatalogClient())

        product = await reconciler.reconcile(website, simple_product())

        assert product.external_product_id == 10
        variants = await variants_of(session, product)
        assert len(variants) == 1
        assert variants[0].external_variation_id is None
        assert variants[0].price_regular == Decimal("12.50")
        assert variants[0].sku == "MUG-1"

    @pytest.mark.asyncio
    async def test_resync_updates_in_place(
        self, session: AsyncSession, website: Website
    ) -> None:
        reconciler = CatalogReconciler(session, FakeCatalogClient())
        first = await reconciler.reconcile(website, simple_product())

        second = await reconciler.reconcile(
            website, simple_product(name="Big Mug", regular_price="15.00", sale_price="13")
        )

        assert second.id == first.id
        assert second.name == "Big Mug"
        variants = await variants_of(session, second)
        assert len(variants) == 1
        assert variants[0].price_regular == Decimal("15.00")
        assert variants[0].price_sale == Decimal("13.00")

        result = await session.execute(select(Product).where(Product.website_id == website.id))
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_variable_product_pages_through_variations(
        self, session: AsyncSession, website: Website
    ) -> None:
        client = FakeCatalogClient(
            {
                20: [
                    variation(201, "S", "10"),
                    variation(202, "M", "11"),
                    variation(203, "L", "12"),
                ]
            }
        )
        reconciler = CatalogReconciler(session, client, page_size=2)

        product = await reconciler.reconcile(
            website, {"id": 20, "name": "Tee", "type": "variable", "status": "publish"}
        )

        assert client.calls == [(20, 1, 2), (20, 2, 2)]
        variants = await variants_of(session, product)
        assert [v.external_variation_id for v in variants] == [201, 202, 203]
        assert variants[2].attributes == {"Size": "L"}
        assert variants[2].price_regular == Decimal("12.00")

    @pytest.mark.asyncio
    async def test_full_last_page_fetches_one_more_empty_page(
        self, session: AsyncSession, website: Website
    ) -> None:
        client = FakeCatalogClient({20: [variation(201, "S", "10"), variation(202, "M", "11")]})
        reconciler = CatalogReconciler(session, client, page_size=2)

        await reconciler.reconcile(website, {"id": 20, "name": "Tee", "type": "variable"})

        assert client.calls == [(20, 1, 2), (20, 2, 2)]

    @pytest.mark.asyncio
    async def test_other_product_types_get_no_variants(
        self, session: AsyncSession, website: Website
    ) -> None:
        client = FakeCatalogClient()
        reconciler = CatalogReconciler(session, client)

        product = await reconciler.reconcile(
            website, {"id": 30, "name": "Bundle", "type": "grouped"}
        )

        assert product.type == "grouped"
        assert await variants_of(session, product) == []
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_variations_missing_remotely_are_kept(
        self, session: AsyncSession, website: Website
    ) -> None:
        client = FakeCatalogClient({20: [variation(201, "S", "10"), variation(202, "M", "11")]})
        reconciler = CatalogReconciler(session, client, page_size=50)
        product = await reconciler.reconcile(website, {"id": 20, "name": "Tee", "type": "variable"})

        client.variations[20] = [variation(201, "S", "10")]
        await reconciler.reconcile(website, {"id": 20, "name": "Tee", "type": "variable"})

        variants = await variants_of(session, product)
        assert [v.external_variation_id for v in variants] == [201, 202]
        assert all(v.deleted_at is None for v in variants)
