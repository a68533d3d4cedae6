"""Website connection endpoints."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.config import Settings, get_settings
from profit_service.exceptions import MissingCredentialsError
from profit_service.infrastructure.database.connection import get_session
from profit_service.infrastructure.database.models import Website
from profit_service.infrastructure.woocommerce import probe_connection
from shared.constants import DEFAULT_CURRENCY

logger = structlog.get_logger()

router = APIRouter()


# =============================================================================
# Models
# =============================================================================


class ConnectionRequest(BaseModel):
    """Store credentials to probe."""

    base_url: str | None = None
    consumer_key: str | None = None
    consumer_secret: str | None = None


class WebsiteCreateRequest(ConnectionRequest):
    """A new store connection."""

    name: str = Field(..., min_length=1, max_length=255)
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=10)
    sync_enabled: bool = True


class WebsiteUpdateRequest(BaseModel):
    """Editable website fields."""

    name: str | None = Field(None, min_length=1, max_length=255)
    currency: str | None = Field(None, min_length=3, max_length=10)
    sync_enabled: bool | None = None


class WebsiteResponse(BaseModel):
    """A connected store, without its secret."""

    id: int
    name: str
    base_url: str
    currency: str
    sync_enabled: bool
    last_sync_at: datetime | None


def _to_response(website: Website) -> WebsiteResponse:
    return WebsiteResponse(
        id=website.id,
        name=website.name,
        base_url=website.base_url,
        currency=website.currency,
        sync_enabled=website.sync_enabled,
        last_sync_at=website.last_sync_at,
    )


async def _check_connection(request: ConnectionRequest, settings: Settings) -> None:
    try:
        connected = await probe_connection(
            request.base_url,
            request.consumer_key,
            request.consumer_secret,
            timeout=settings.woocommerce_timeout,
        )
    except MissingCredentialsError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    if not connected:
        raise HTTPException(status_code=400, detail="Connection failed")


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/test-connection")
async def test_connection(
    request: ConnectionRequest,
    settings: Settings = Depends(get_settings),
) -> dict[str, bool]:
    """
    Check store credentials without saving them.

    Missing fields are rejected with `400` before any request is made to the
    store; a failed probe is also `400`.
    """
    await _check_connection(request, settings)
    return {"success": True}


@router.post("", response_model=WebsiteResponse, status_code=201)
async def create_website(
    request: WebsiteCreateRequest,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> WebsiteResponse:
    """Probe the store, then persist the connection."""
    await _check_connection(request, settings)

    website = Website(
        name=request.name,
        base_url=request.base_url.rstrip("/"),
        consumer_key=request.consumer_key,
        consumer_secret=request.consumer_secret,
        currency=request.currency.upper(),
        sync_enabled=request.sync_enabled,
        last_sync_at=None,
    )
    session.add(website)
    await session.flush()
    logger.info("Website connected", website_id=website.id, base_url=website.base_url)
    return _to_response(website)


@router.get("", response_model=list[WebsiteResponse])
async def list_websites(
    session: AsyncSession = Depends(get_session),
) -> list[WebsiteResponse]:
    result = await session.execute(select(Website).order_by(Website.id))
    return [_to_response(website) for website in result.scalars().all()]


@router.patch("/{website_id}", response_model=WebsiteResponse)
async def update_website(
    website_id: int,
    request: WebsiteUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> WebsiteResponse:
    website = await session.get(Website, website_id)
    if website is None:
        raise HTTPException(status_code=404, detail="Website not found")

    for field, value in request.model_dump(exclude_none=True).items():
        setattr(website, field, value.upper() if field == "currency" else value)
    await session.flush()
    return _to_response(website)
