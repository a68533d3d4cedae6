"""Read-only profit reporting over synced orders."""

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

import structlog
from sqlalchemy import Select, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.infrastructure.database.models import (
    Order,
    OrderItem,
    Product,
    Variant,
    Website,
)
from profit_service.infrastructure.redis import CacheService
from profit_service.services.cost_ledger import CostLedger
from shared.constants import CSV_HEADER, DEFAULT_REPORT_LIMIT, REVENUE_STATUSES
from shared.money import ZERO, quantize_money, to_naive_utc

logger = structlog.get_logger()

SUMMARY_CACHE_PREFIX = "profit-summary:"


def _money(value: Any) -> Decimal:
    if value is None:
        return quantize_money(ZERO)
    return quantize_money(Decimal(str(value)))


@dataclass
class ProfitSummary:
    """Aggregated revenue, cost and profit for a filter."""

    total_revenue: Decimal
    total_cost: Decimal
    total_profit: Decimal
    average_margin: Decimal
    order_count: int
    item_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_revenue": str(self.total_revenue),
            "total_cost": str(self.total_cost),
            "total_profit": str(self.total_profit),
            "average_margin": str(self.average_margin),
            "order_count": self.order_count,
            "item_count": self.item_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfitSummary":
        return cls(
            total_revenue=Decimal(data["total_revenue"]),
            total_cost=Decimal(data["total_cost"]),
            total_profit=Decimal(data["total_profit"]),
            average_margin=Decimal(data["average_margin"]),
            order_count=int(data["order_count"]),
            item_count=int(data["item_count"]),
        )


@dataclass
class OrderItemRow:
    """Order item flattened with its order and website fields."""

    order_item_id: int
    order_number: str
    order_date: datetime
    order_status: str
    country: str | None
    website_id: int
    website_name: str
    currency: str
    product_name: str
    variant_name: str | None
    sku: str | None
    quantity: int
    net_revenue: Decimal
    cost_snapshot: Decimal
    total_cost: Decimal
    profit: Decimal
    profit_margin: Decimal


@dataclass
class VariantCostRow:
    """A variant with its current ledger cost."""

    variant_id: int
    product_name: str
    sku: str | None
    attributes: dict[str, Any]
    price_regular: Decimal
    price_sale: Decimal | None
    website_name: str
    currency: str
    current_cost: Decimal


class ProfitReportService:
    """Query surface for dashboards and exports."""

    def __init__(
        self,
        session: AsyncSession,
        cache: CacheService | None = None,
        cache_ttl_seconds: int = 300,
    ):
        self.session = session
        self.cache = cache or CacheService(None)
        self.cache_ttl_seconds = cache_ttl_seconds

    def _apply_filters(
        self,
        query: Select,
        website_id: int | None,
        start: datetime | None,
        end: datetime | None,
        statuses: Sequence[str] | None,
    ) -> Select:
        query = query.where(Order.deleted_at.is_(None))
        if website_id is not None:
            query = query.where(Order.website_id == website_id)
        if start is not None:
            query = query.where(Order.order_date >= to_naive_utc(start))
        if end is not None:
            query = query.where(Order.order_date <= to_naive_utc(end))
        if statuses:
            query = query.where(Order.status.in_(list(statuses)))
        return query

    async def summarize(
        self,
        website_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Sequence[str] | None = tuple(REVENUE_STATUSES),
    ) -> ProfitSummary:
        """
        Sum revenue, cost and profit over order items.

        Args:
            website_id: Restrict to one website (None = all)
            start: Inclusive lower bound on order date
            end: Inclusive upper bound on order date
            statuses: Order statuses to include (None or empty = all)

        Returns:
            ProfitSummary; average margin is 0 when there is no revenue
        """
        cache_key = (
            f"{SUMMARY_CACHE_PREFIX}{website_id or 'all'}:"
            f"{start.isoformat() if start else ''}:{end.isoformat() if end else ''}:"
            f"{','.join(sorted(statuses)) if statuses else '*'}"
        )
        cached = await self.cache.get(cache_key)
        if cached:
            return ProfitSummary.from_dict(cached)

        query = select(
            func.sum(OrderItem.net_revenue),
            func.sum(OrderItem.total_cost),
            func.sum(OrderItem.profit),
            func.count(distinct(Order.id)),
            func.count(OrderItem.id),
        ).join(Order, OrderItem.order_id == Order.id)
        query = self._apply_filters(query, website_id, start, end, statuses)

        result = await self.session.execute(query)
        revenue, cost, profit, order_count, item_count = result.one()

        total_revenue = _money(revenue)
        total_profit = _money(profit)
        if total_revenue > 0:
            average_margin = quantize_money(total_profit / total_revenue * Decimal("100"))
        else:
            average_margin = quantize_money(ZERO)

        summary = ProfitSummary(
            total_revenue=total_revenue,
            total_cost=_money(cost),
            total_profit=total_profit,
            average_margin=average_margin,
            order_count=int(order_count or 0),
            item_count=int(item_count or 0),
        )
        await self.cache.set(cache_key, summary.to_dict(), ttl_seconds=self.cache_ttl_seconds)
        return summary

    async def list_order_items(
        self,
        website_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Sequence[str] | None = None,
        limit: int | None = DEFAULT_REPORT_LIMIT,
        offset: int = 0,
    ) -> list[OrderItemRow]:
        """Order items joined with order and website fields, newest orders first."""
        query = (
            select(
                OrderItem,
                Order.order_number,
                Order.order_date,
                Order.status,
                Order.country,
                Website.id.label("website_id"),
                Website.name.label("website_name"),
                Website.currency,
            )
            .join(Order, OrderItem.order_id == Order.id)
            .join(Website, Order.website_id == Website.id)
            .order_by(Order.order_date.desc(), OrderItem.id)
            .offset(offset)
        )
        query = self._apply_filters(query, website_id, start, end, statuses)
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        rows = []
        for item, number, order_date, status, country, wid, wname, currency in result.all():
            rows.append(
                OrderItemRow(
                    order_item_id=item.id,
                    order_number=number,
                    order_date=order_date,
                    order_status=status,
                    country=country,
                    website_id=wid,
                    website_name=wname,
                    currency=currency,
                    product_name=item.product_name,
                    variant_name=item.variant_name,
                    sku=item.sku,
                    quantity=item.quantity,
                    net_revenue=_money(item.net_revenue),
                    cost_snapshot=_money(item.cost_snapshot),
                    total_cost=_money(item.total_cost),
                    profit=_money(item.profit),
                    profit_margin=_money(item.profit_margin),
                )
            )
        return rows

    async def export_csv(
        self,
        website_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Sequence[str] | None = None,
    ) -> str:
        """CSV projection of the order item listing, every cell quoted."""
        rows = await self.list_order_items(
            website_id=website_id, start=start, end=end, statuses=statuses, limit=None
        )

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for row in rows:
            writer.writerow(
                [
                    row.order_number,
                    row.order_date.strftime("%Y-%m-%d"),
                    row.website_name,
                    row.product_name,
                    row.sku or "",
                    row.country or "",
                    row.quantity,
                    f"{row.net_revenue:.2f}",
                    f"{row.total_cost:.2f}",
                    f"{row.profit:.2f}",
                    f"{row.profit_margin:.2f}",
                    row.currency or "USD",
                ]
            )

        logger.info("Exported order items", rows=len(rows), website_id=website_id)
        return buffer.getvalue()

    async def list_variant_costs(self, website_id: int | None = None) -> list[VariantCostRow]:
        """Active variants with product/website names and current cost."""
        query = (
            select(Variant, Product.name, Website.name, Website.currency)
            .join(Product, Variant.product_id == Product.id)
            .join(Website, Variant.website_id == Website.id)
            .where(Variant.deleted_at.is_(None))
            .order_by(Product.name, Variant.id)
        )
        if website_id is not None:
            query = query.where(Variant.website_id == website_id)

        result = await self.session.execute(query)
        ledger = CostLedger(self.session)
        rows = []
        for variant, product_name, website_name, currency in result.all():
            rows.append(
                VariantCostRow(
                    variant_id=variant.id,
                    product_name=product_name,
                    sku=variant.sku,
                    attributes=variant.attributes or {},
                    price_regular=_money(variant.price_regular),
                    price_sale=_money(variant.price_sale) if variant.price_sale is not None else None,
                    website_name=website_name,
                    currency=currency,
                    current_cost=await ledger.resolve_current_cost(variant.id),
                )
            )
        return rows
