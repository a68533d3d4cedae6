"""Website synchronization tasks."""

import asyncio
from typing import Any

import structlog
from celery import shared_task
from sqlalchemy import select

from profit_service.config import get_settings
from profit_service.infrastructure.database.connection import (
    get_async_engine,
    get_async_session_factory,
)
from profit_service.infrastructure.database.models import Website
from profit_service.infrastructure.redis import (
    CacheService,
    SyncLock,
    close_redis,
    get_redis_client,
)
from profit_service.main import configure_logging
from profit_service.services.sync_orchestrator import SyncOrchestrator

configure_logging()

logger = structlog.get_logger()


async def run_website_sync(website_id: int) -> dict[str, Any]:
    """
    Sync one website on a fresh engine.

    Each Celery task runs its own event loop, so connections are created and
    disposed per call rather than shared with the API's global pool.
    """
    settings = get_settings()
    engine = get_async_engine()
    factory = get_async_session_factory(engine)
    redis_client = await get_redis_client()

    try:
        async with factory() as session:
            website = await session.get(Website, website_id)
            if website is None:
                logger.warning("Website not found, skipping sync", website_id=website_id)
                return {"success": False, "error": "Website not found"}

            orchestrator = SyncOrchestrator(
                session,
                settings=settings,
                lock=SyncLock(redis_client, settings.sync_lock_ttl_seconds),
                cache=CacheService(redis_client),
            )
            outcome = await orchestrator.sync_website(website)
            return outcome.to_dict()
    finally:
        await close_redis()
        await engine.dispose()


async def enabled_website_ids() -> list[int]:
    engine = get_async_engine()
    factory = get_async_session_factory(engine)
    try:
        async with factory() as session:
            result = await session.execute(
                select(Website.id).where(Website.sync_enabled.is_(True)).order_by(Website.id)
            )
            return list(result.scalars().all())
    finally:
        await engine.dispose()


@shared_task(bind=True)
def sync_website(self, website_id: int) -> dict:
    """
    Synchronize one website's products and orders.

    Failures are recorded on the website's sync runs and returned in the
    result rather than retried; the next scheduled run picks up from scratch.

    Args:
        website_id: Local website id

    Returns:
        dict: The sync outcome
    """
    logger.info("Starting website sync task", website_id=website_id)
    result = asyncio.run(run_website_sync(website_id))
    logger.info("Website sync task finished", website_id=website_id, success=result["success"])
    return result


@shared_task(bind=True)
def sync_enabled_websites(self) -> dict:
    """
    Queue a sync for every website with syncing enabled.

    Returns:
        dict: The queued website ids
    """
    website_ids = asyncio.run(enabled_website_ids())
    for website_id in website_ids:
        sync_website.delay(website_id)

    logger.info("Queued website syncs", count=len(website_ids))
    return {"queued": website_ids}
