"""Order reconciliation and per-line profit attribution.

Every re-sync of an order replaces all of its line items. Each rebuilt item
re-resolves its unit cost from the cost ledger as of the order date, so the
snapshot never follows today's cost.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.infrastructure.database.models import (
    Order,
    OrderItem,
    Product,
    Variant,
    Website,
)
from profit_service.services.cost_ledger import CostLedger
from shared.money import ZERO, parse_money, parse_timestamp, quantize_money

logger = structlog.get_logger()

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LineFinancials:
    """Derived money fields of one order line."""

    net_revenue: Decimal
    cost_snapshot: Decimal
    total_cost: Decimal
    profit: Decimal
    profit_margin: Decimal


def compute_line_financials(
    line_total: Decimal, quantity: int, unit_cost: Decimal
) -> LineFinancials:
    """Profit figures for a line; margin is a percentage, 0 when revenue is 0."""
    net_revenue = quantize_money(line_total)
    cost_snapshot = quantize_money(unit_cost)
    total_cost = quantize_money(cost_snapshot * quantity)
    profit = net_revenue - total_cost
    if net_revenue > 0:
        profit_margin = quantize_money(profit / net_revenue * HUNDRED)
    else:
        profit_margin = quantize_money(ZERO)
    return LineFinancials(
        net_revenue=net_revenue,
        cost_snapshot=cost_snapshot,
        total_cost=total_cost,
        profit=profit,
        profit_margin=profit_margin,
    )


def variant_label(line_item: dict[str, Any]) -> str | None:
    """Human readable variation label from the line's visible meta data."""
    parts = []
    for meta in line_item.get("meta_data") or []:
        key = str(meta.get("display_key") or meta.get("key") or "")
        if not key or key.startswith("_"):
            continue
        value = meta.get("display_value", meta.get("value"))
        if isinstance(value, (dict, list)):
            continue
        parts.append(f"{key}: {value}")
    return ", ".join(parts) or None


def order_timestamp(remote_order: dict[str, Any]) -> datetime:
    """The order's creation time in naive UTC."""
    order_date = parse_timestamp(remote_order.get("date_created_gmt")) or parse_timestamp(
        remote_order.get("date_created")
    )
    if order_date is None:
        raise ValueError(f"Order {remote_order.get('id')} has no creation date")
    return order_date


class OrderReconciler:
    """Upserts remote orders and rebuilds their line items."""

    def __init__(self, session: AsyncSession, cost_ledger: CostLedger):
        self.session = session
        self.cost_ledger = cost_ledger

    async def reconcile(self, website: Website, remote_order: dict[str, Any]) -> Order:
        """
        Mirror one remote order with freshly attributed line items.

        Args:
            website: Website the order belongs to
            remote_order: Raw order payload from the orders endpoint

        Returns:
            The local order row (flushed, not committed)
        """
        order = await self._upsert_order(website, remote_order)

        for line_item in remote_order.get("line_items") or []:
            await self._insert_item(website, order, line_item)

        await self.session.flush()
        return order

    async def _upsert_order(self, website: Website, remote_order: dict[str, Any]) -> Order:
        external_id = int(remote_order["id"])
        result = await self.session.execute(
            select(Order).where(
                Order.website_id == website.id,
                Order.external_order_id == external_id,
            )
        )
        order = result.scalar_one_or_none()

        billing = remote_order.get("billing") or {}
        shipping = remote_order.get("shipping") or {}
        fields = {
            "order_number": str(remote_order.get("number") or external_id),
            "status": remote_order.get("status") or "pending",
            "currency": remote_order.get("currency") or website.currency,
            "country": shipping.get("country") or billing.get("country") or None,
            "customer_email": billing.get("email") or None,
            "total_amount": quantize_money(parse_money(remote_order.get("total"))),
            "total_tax": quantize_money(parse_money(remote_order.get("total_tax"))),
            "total_shipping": quantize_money(parse_money(remote_order.get("shipping_total"))),
            "total_discount": quantize_money(parse_money(remote_order.get("discount_total"))),
            "order_date": order_timestamp(remote_order),
            "deleted_at": None,
        }

        if order is None:
            order = Order(website_id=website.id, external_order_id=external_id, **fields)
            self.session.add(order)
            await self.session.flush()
            logger.debug("Inserted order", website_id=website.id, external_order_id=external_id)
        else:
            for key, value in fields.items():
                setattr(order, key, value)
            await self.session.execute(
                delete(OrderItem).where(OrderItem.order_id == order.id)
            )
            await self.session.flush()
            logger.debug("Updated order, replaced items", website_id=website.id, external_order_id=external_id)

        return order

    async def _resolve_variant(
        self, website: Website, line_item: dict[str, Any]
    ) -> tuple[int | None, int | None]:
        """Return ``(variant_id, product_id)`` for a line, either may be None."""
        variation_id = int(line_item.get("variation_id") or 0)
        if variation_id > 0:
            result = await self.session.execute(
                select(Variant.id, Variant.product_id)
                .where(
                    Variant.website_id == website.id,
                    Variant.external_variation_id == variation_id,
                )
                .limit(1)
            )
            row = result.first()
            return (row.id, row.product_id) if row else (None, None)

        external_product_id = int(line_item.get("product_id") or 0)
        result = await self.session.execute(
            select(Product.id).where(
                Product.website_id == website.id,
                Product.external_product_id == external_product_id,
            )
        )
        product_id = result.scalar_one_or_none()
        if product_id is None:
            return None, None

        result = await self.session.execute(
            select(Variant.id).where(
                Variant.product_id == product_id,
                Variant.external_variation_id.is_(None),
            )
        )
        return result.scalar_one_or_none(), product_id

    async def _insert_item(
        self, website: Website, order: Order, line_item: dict[str, Any]
    ) -> OrderItem:
        variant_id, product_id = await self._resolve_variant(website, line_item)

        if variant_id is not None:
            unit_cost = await self.cost_ledger.resolve_cost_at(variant_id, order.order_date)
        else:
            unit_cost = ZERO
            logger.debug(
                "No local variant for line item, cost is 0",
                website_id=website.id,
                external_order_id=order.external_order_id,
                external_product_id=line_item.get("product_id"),
                external_variation_id=line_item.get("variation_id"),
            )

        quantity = int(line_item.get("quantity") or 0)
        total = quantize_money(parse_money(line_item.get("total")))
        financials = compute_line_financials(total, quantity, unit_cost)

        item = OrderItem(
            order_id=order.id,
            variant_id=variant_id,
            product_id=product_id,
            website_id=website.id,
            external_item_id=int(line_item["id"]),
            product_name=line_item.get("name") or "",
            variant_name=variant_label(line_item),
            sku=line_item.get("sku") or None,
            quantity=quantity,
            price_per_item=quantize_money(parse_money(line_item.get("price"))),
            subtotal=quantize_money(parse_money(line_item.get("subtotal"))),
            total=total,
            net_revenue=financials.net_revenue,
            cost_snapshot=financials.cost_snapshot,
            total_cost=financials.total_cost,
            profit=financials.profit,
            profit_margin=financials.profit_margin,
        )
        self.session.add(item)
        return item
