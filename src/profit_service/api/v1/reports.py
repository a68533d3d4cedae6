"""Profit reporting endpoints for dashboards and exports."""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Annotated, Any

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.config import Settings, get_settings
from profit_service.infrastructure.database.connection import get_session
from profit_service.infrastructure.redis import CacheService, get_redis
from profit_service.services.reporting import ProfitReportService
from shared.constants import DEFAULT_REPORT_LIMIT, MAX_REPORT_LIMIT, REVENUE_STATUSES
from shared.money import utcnow

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================


class ProfitSummaryResponse(BaseModel):
    """Aggregated profit for a website/date filter."""

    total_revenue: Decimal
    total_cost: Decimal
    total_profit: Decimal
    average_margin: Decimal
    order_count: int
    item_count: int
    start_date: str
    end_date: str | None


class OrderItemResponse(BaseModel):
    """One order line with order and website context."""

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


class VariantCostResponse(BaseModel):
    """Variant pricing with its current cost."""

    variant_id: int
    product_name: str
    sku: str | None
    attributes: dict[str, Any]
    price_regular: Decimal
    price_sale: Decimal | None
    website_name: str
    currency: str
    current_cost: Decimal


def _date_range(
    start_date: date | None, end_date: date | None, settings: Settings
) -> tuple[datetime, datetime | None]:
    """Whole-day bounds; the start defaults to the configured lookback."""
    start = start_date or (utcnow().date() - timedelta(days=settings.default_report_days))
    start_at = datetime.combine(start, time.min)
    end_at = datetime.combine(end_date, time.max) if end_date else None
    return start_at, end_at


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/summary", response_model=ProfitSummaryResponse)
async def get_profit_summary(
    website_id: Annotated[int | None, Query(description="Filter by website")] = None,
    start_date: Annotated[date | None, Query(description="Start date (order date)")] = None,
    end_date: Annotated[date | None, Query(description="End date (order date)")] = None,
    all_statuses: Annotated[
        bool, Query(description="Include every order status, not only revenue statuses")
    ] = False,
    session: AsyncSession = Depends(get_session),
    redis_client: aioredis.Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> ProfitSummaryResponse:
    """
    Sum revenue, cost and profit over synced order items.

    By default only `completed`, `processing` and `on-hold` orders count.
    Results are cached briefly and invalidated after every sync that commits orders.
    """
    start_at, end_at = _date_range(start_date, end_date, settings)
    service = ProfitReportService(
        session,
        cache=CacheService(redis_client),
        cache_ttl_seconds=settings.report_cache_ttl_seconds,
    )
    summary = await service.summarize(
        website_id=website_id,
        start=start_at,
        end=end_at,
        statuses=None if all_statuses else REVENUE_STATUSES,
    )
    return ProfitSummaryResponse(
        **summary.__dict__,
        start_date=start_at.date().isoformat(),
        end_date=end_at.date().isoformat() if end_at else None,
    )


@router.get("/order-items", response_model=list[OrderItemResponse])
async def list_order_items(
    website_id: Annotated[int | None, Query(description="Filter by website")] = None,
    start_date: Annotated[date | None, Query(description="Start date (order date)")] = None,
    end_date: Annotated[date | None, Query(description="End date (order date)")] = None,
    limit: Annotated[int, Query(ge=1, le=MAX_REPORT_LIMIT)] = DEFAULT_REPORT_LIMIT,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> list[OrderItemResponse]:
    start_at, end_at = _date_range(start_date, end_date, settings)
    rows = await ProfitReportService(session).list_order_items(
        website_id=website_id, start=start_at, end=end_at, limit=limit, offset=offset
    )
    return [OrderItemResponse(**row.__dict__) for row in rows]


@router.get("/order-items.csv")
async def export_order_items_csv(
    website_id: Annotated[int | None, Query(description="Filter by website")] = None,
    start_date: Annotated[date | None, Query(description="Start date (order date)")] = None,
    end_date: Annotated[date | None, Query(description="End date (order date)")] = None,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Download the order item listing as CSV."""
    start_at, end_at = _date_range(start_date, end_date, settings)
    content = await ProfitReportService(session).export_csv(
        website_id=website_id, start=start_at, end=end_at
    )
    filename = f"profit-report-{utcnow().date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/variant-costs", response_model=list[VariantCostResponse])
async def list_variant_costs(
    website_id: Annotated[int | None, Query(description="Filter by website")] = None,
    session: AsyncSession = Depends(get_session),
) -> list[VariantCostResponse]:
    rows = await ProfitReportService(session).list_variant_costs(website_id=website_id)
    return [VariantCostResponse(**row.__dict__) for row in rows]
