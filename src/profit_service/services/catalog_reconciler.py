"""Catalog reconciliation: remote products and variations into local rows.

Products are matched on ``(website_id, external_product_id)`` and variants on
``(product_id, external_variation_id)``. Local rows missing from the remote
catalog are left untouched.
"""

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.infrastructure.database.models import (
    Product,
    ProductType,
    Variant,
    Website,
)
from profit_service.infrastructure.woocommerce import WooCommerceClient
from shared.constants import REMOTE_PAGE_SIZE
from shared.money import parse_money, parse_timestamp, quantize_money

logger = structlog.get_logger()


def attributes_to_mapping(attributes: list[dict[str, Any]] | None) -> dict[str, str]:
    """Flatten ``[{"name": "Size", "option": "L"}, ...]`` into ``{"Size": "L"}``."""
    mapping: dict[str, str] = {}
    for attribute in attributes or []:
        name = attribute.get("name")
        if name:
            mapping[str(name)] = str(attribute.get("option") or "")
    return mapping


def pricing_fields(payload: dict[str, Any]) -> dict[str, Any]:
    """Extract variant pricing from a remote product or variation payload."""
    sale_price = parse_money(payload.get("sale_price"), default=None)
    return {
        "price_regular": quantize_money(parse_money(payload.get("regular_price"))),
        "price_sale": quantize_money(sale_price) if sale_price is not None else None,
        "sale_date_from": parse_timestamp(
            payload.get("date_on_sale_from_gmt") or payload.get("date_on_sale_from")
        ),
        "sale_date_to": parse_timestamp(
            payload.get("date_on_sale_to_gmt") or payload.get("date_on_sale_to")
        ),
    }


class CatalogReconciler:
    """Upserts remote products and their variants for one website."""

    def __init__(
        self,
        session: AsyncSession,
        client: WooCommerceClient,
        page_size: int = REMOTE_PAGE_SIZE,
    ):
        self.session = session
        self.client = client
        self.page_size = page_size

    async def reconcile(self, website: Website, remote_product: dict[str, Any]) -> Product:
        """
        Mirror one remote product and its variants.

        Args:
            website: Website the product belongs to
            remote_product: Raw product payload from the products endpoint

        Returns:
            The local product row (flushed, not committed)
        """
        product = await self._upsert_product(website, remote_product)

        product_type = remote_product.get("type")
        if product_type == ProductType.SIMPLE.value:
            await self._upsert_simple_variant(website, product, remote_product)
        elif product_type == ProductType.VARIABLE.value:
            await self._sync_variations(website, product)
        else:
            logger.debug(
                "Product type has no variants",
                website_id=website.id,
                external_product_id=product.external_product_id,
                type=product_type,
            )

        return product

    async def _upsert_product(
        self, website: Website, remote_product: dict[str, Any]
    ) -> Product:
        external_id = int(remote_product["id"])
        result = await self.session.execute(
            select(Product).where(
                Product.website_id == website.id,
                Product.external_product_id == external_id,
            )
        )
        product = result.scalar_one_or_none()

        fields = {
            "name": remote_product.get("name") or "",
            "sku": remote_product.get("sku") or None,
            "type": remote_product.get("type") or ProductType.SIMPLE.value,
            "status": remote_product.get("status") or "publish",
            "deleted_at": None,
        }

        if product is None:
            product = Product(
                website_id=website.id, external_product_id=external_id, **fields
            )
            self.session.add(product)
            logger.debug("Inserted product", website_id=website.id, external_product_id=external_id)
        else:
            for key, value in fields.items():
                setattr(product, key, value)
            logger.debug("Updated product", website_id=website.id, external_product_id=external_id)

        await self.session.flush()
        return product

    async def _upsert_simple_variant(
        self, website: Website, product: Product, remote_product: dict[str, Any]
    ) -> Variant:
        result = await self.session.execute(
            select(Variant).where(
                Variant.product_id == product.id,
                Variant.external_variation_id.is_(None),
            )
        )
        variant = result.scalar_one_or_none()

        fields = {
            "sku": remote_product.get("sku") or None,
            "attributes": {},
            "deleted_at": None,
            **pricing_fields(remote_product),
        }
        return await self._save_variant(website, product, variant, None, fields)

    async def _sync_variations(self, website: Website, product: Product) -> int:
        """Page through a variable product's variations; returns how many were seen."""
        page = 1
        seen = 0
        while True:
            variations = await self.client.get_product_variations(
                product.external_product_id, page=page, per_page=self.page_size
            )
            for variation in variations:
                await self._upsert_variation(website, product, variation)
                seen += 1
            if len(variations) < self.page_size:
                break
            page += 1

        logger.debug(
            "Synced variations",
            website_id=website.id,
            external_product_id=product.external_product_id,
            variations=seen,
        )
        return seen

    async def _upsert_variation(
        self, website: Website, product: Product, variation: dict[str, Any]
    ) -> Variant:
        external_variation_id = int(variation["id"])
        result = await self.session.execute(
            select(Variant).where(
                Variant.product_id == product.id,
                Variant.external_variation_id == external_variation_id,
            )
        )
        variant = result.scalar_one_or_none()

        fields = {
            "sku": variation.get("sku") or None,
            "attributes": attributes_to_mapping(variation.get("attributes")),
            "deleted_at": None,
            **pricing_fields(variation),
        }
        return await self._save_variant(
            website, product, variant, external_variation_id, fields
        )

    async def _save_variant(
        self,
        website: Website,
        product: Product,
        variant: Variant | None,
        external_variation_id: int | None,
        fields: dict[str, Any],
    ) -> Variant:
        if variant is None:
            variant = Variant(
                product_id=product.id,
                website_id=website.id,
                external_variation_id=external_variation_id,
                **fields,
            )
            self.session.add(variant)
        else:
            for key, value in fields.items():
                setattr(variant, key, value)

        await self.session.flush()
        return variant
