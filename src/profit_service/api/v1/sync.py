"""Sync trigger endpoints."""

from datetime import datetime
from typing import Annotated, Any

import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.config import Settings, get_settings
from profit_service.infrastructure.database.connection import get_session
from profit_service.infrastructure.database.models import Website
from profit_service.infrastructure.redis import CacheService, SyncLock, get_redis
from profit_service.services.sync_orchestrator import SyncErrorKind, SyncOrchestrator
from profit_service.services.sync_tracker import SyncRunTracker
from shared.constants import DEFAULT_SYNC_RUNS_LIMIT

logger = structlog.get_logger()

router = APIRouter()


# =============================================================================
# Models
# =============================================================================


class SyncResponse(BaseModel):
    """Outcome of a website sync."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    products_processed: int | None = Field(None, serialization_alias="productsProcessed")
    orders_processed: int | None = Field(None, serialization_alias="ordersProcessed")
    error: str | None = None
    error_kind: str | None = Field(None, serialization_alias="errorKind")


class SyncRunResponse(BaseModel):
    """A recorded sync run."""

    id: int
    sync_type: str
    status: str
    started_at: datetime
    completed_at: datetime | None
    records_processed: int | None
    error_message: str | None
    error_details: dict[str, Any] | None


def _response(status_code: int, body: SyncResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/{website_id}", response_model=SyncResponse)
async def trigger_sync(
    website_id: int,
    session: AsyncSession = Depends(get_session),
    redis_client: aioredis.Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """
    Sync a website's products, then its orders.

    **Status codes:**
    - `200`: both phases completed
    - `404`: unknown website
    - `409`: a sync for this website is already running
    - `500`: a phase failed, was cancelled or timed out (`errorKind` tells which)
    """
    website = await session.get(Website, website_id)
    if website is None:
        return _response(404, SyncResponse(success=False, error="Website not found"))

    orchestrator = SyncOrchestrator(
        session,
        settings=settings,
        lock=SyncLock(redis_client, settings.sync_lock_ttl_seconds),
        cache=CacheService(redis_client),
    )
    try:
        outcome = await orchestrator.sync_website(website)
    except Exception as e:
        logger.error("Sync crashed", website_id=website_id, error=str(e))
        return _response(500, SyncResponse(success=False, error=str(e)))

    body = SyncResponse(**outcome.to_dict())
    if outcome.success:
        return _response(200, body)
    if outcome.error_kind == SyncErrorKind.ALREADY_SYNCING.value:
        return _response(409, body)
    return _response(500, body)


@router.get("/{website_id}/runs", response_model=list[SyncRunResponse])
async def list_sync_runs(
    website_id: int,
    limit: Annotated[int, Query(ge=1, le=100)] = DEFAULT_SYNC_RUNS_LIMIT,
    session: AsyncSession = Depends(get_session),
) -> list[SyncRunResponse]:
    """Most recent sync runs for a website, newest first."""
    if await session.get(Website, website_id) is None:
        raise HTTPException(status_code=404, detail="Website not found")

    runs = await SyncRunTracker(session).latest_runs(website_id, limit=limit)
    return [
        SyncRunResponse(
            id=run.id,
            sync_type=run.sync_type,
            status=run.status,
            started_at=run.started_at,
            completed_at=run.completed_at,
            records_processed=run.records_processed,
            error_message=run.error_message,
            error_details=run.error_details,
        )
        for run in runs
    ]
