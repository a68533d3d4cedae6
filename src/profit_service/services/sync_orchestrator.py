"""Website sync orchestration.

Runs the products phase over every page, then the orders phase, strictly
sequentially: order cost attribution needs the catalog to exist locally. Each
remote entity is reconciled and committed before the next one starts, so a
failure never leaves an order without its items.
"""

import asyncio
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.config import Settings, get_settings
from profit_service.exceptions import (
    SyncAlreadyRunningError,
    SyncCancelledError,
    SyncPhaseError,
    SyncTimeoutError,
)
from profit_service.infrastructure.database.models import SyncType, Website
from profit_service.infrastructure.redis import CacheService, SyncLock
from profit_service.infrastructure.woocommerce import WooCommerceClient
from profit_service.services.catalog_reconciler import CatalogReconciler
from profit_service.services.cost_ledger import CostLedger
from profit_service.services.order_reconciler import OrderReconciler
from profit_service.services.reporting import SUMMARY_CACHE_PREFIX
from profit_service.services.sync_state import PagedSyncState
from profit_service.services.sync_tracker import SyncRunTracker
from shared.money import utcnow

logger = structlog.get_logger()

FetchPage = Callable[[int], Awaitable[list[dict[str, Any]]]]
Reconcile = Callable[[Website, dict[str, Any]], Awaitable[Any]]


class SyncErrorKind(str, Enum):
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    ALREADY_SYNCING = "already_syncing"


@dataclass
class SyncOutcome:
    """Result of one ``sync_website`` call."""

    success: bool
    products_processed: int | None = None
    orders_processed: int | None = None
    error: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _error_kind(error: Exception) -> str:
    if isinstance(error, SyncCancelledError):
        return SyncErrorKind.CANCELLED.value
    if isinstance(error, SyncTimeoutError):
        return SyncErrorKind.TIMEOUT.value
    return SyncErrorKind.FAILED.value


class SyncOrchestrator:
    """Syncs one website's catalog and orders into the local store."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        lock: SyncLock | None = None,
        cache: CacheService | None = None,
        client_factory: Callable[[Website], WooCommerceClient] | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.lock = lock or SyncLock(None, self.settings.sync_lock_ttl_seconds)
        self.cache = cache or CacheService(None)
        self.client_factory = client_factory or (
            lambda website: WooCommerceClient.for_website(website, self.settings)
        )
        self.clock = clock
        self.sleep = sleep
        self.monotonic = monotonic
        self.page_size = self.settings.woocommerce_page_size
        self.tracker = SyncRunTracker(session, clock)
        self.cost_ledger = CostLedger(session, clock)

    async def sync_website(
        self, website: Website, cancel_event: asyncio.Event | None = None
    ) -> SyncOutcome:
        """
        Sync products then orders for a website.

        Args:
            website: The website to sync
            cancel_event: Checked between pages and entities; when set the
                running phase fails with kind ``cancelled``

        Returns:
            SyncOutcome with processed counts, or the error of the first
            failing phase
        """
        website_id = website.id
        try:
            async with self.lock.hold(website_id):
                return await self._sync_locked(website, website_id, cancel_event)
        except SyncAlreadyRunningError as e:
            logger.warning("Sync rejected, already running", website_id=website_id)
            return SyncOutcome(
                success=False,
                error=e.message,
                error_kind=SyncErrorKind.ALREADY_SYNCING.value,
            )

    async def _sync_locked(
        self,
        website: Website,
        website_id: int,
        cancel_event: asyncio.Event | None,
    ) -> SyncOutcome:
        deadline = self.monotonic() + self.settings.sync_timeout_seconds

        def checkpoint() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise SyncCancelledError("Sync cancelled")
            if self.monotonic() > deadline:
                raise SyncTimeoutError(
                    f"Sync exceeded {self.settings.sync_timeout_seconds:g}s timeout"
                )

        logger.info("Starting website sync", website_id=website_id)

        async with self.client_factory(website) as client:
            catalog = CatalogReconciler(self.session, client, self.page_size)
            try:
                products_processed = await self._run_phase(
                    website,
                    website_id,
                    SyncType.PRODUCTS.value,
                    lambda page: client.get_products(page=page, per_page=self.page_size),
                    catalog.reconcile,
                    checkpoint,
                )
            except SyncPhaseError as e:
                return SyncOutcome(success=False, error=e.message, error_kind=e.kind)

            orders = OrderReconciler(self.session, self.cost_ledger)
            after = (
                self.clock() - timedelta(days=self.settings.sync_orders_days_back)
            ).isoformat()
            try:
                orders_processed = await self._run_phase(
                    website,
                    website_id,
                    SyncType.ORDERS.value,
                    lambda page: client.get_orders(
                        page=page, per_page=self.page_size, after=after
                    ),
                    orders.reconcile,
                    checkpoint,
                )
            except SyncPhaseError as e:
                # Orders committed before the failure change the report totals
                if e.processed:
                    await self.cache.delete_prefix(SUMMARY_CACHE_PREFIX)
                return SyncOutcome(
                    success=False,
                    products_processed=products_processed,
                    error=e.message,
                    error_kind=e.kind,
                )

        await self.cache.delete_prefix(SUMMARY_CACHE_PREFIX)
        logger.info(
            "Website sync completed",
            website_id=website_id,
            products_processed=products_processed,
            orders_processed=orders_processed,
        )
        return SyncOutcome(
            success=True,
            products_processed=products_processed,
            orders_processed=orders_processed,
        )

    async def _run_phase(
        self,
        website: Website,
        website_id: int,
        sync_type: str,
        fetch_page: FetchPage,
        reconcile: Reconcile,
        checkpoint: Callable[[], None],
    ) -> int:
        """Page through one resource; returns the processed count.

        Raises:
            SyncPhaseError: after recording the run as failed
        """
        run_id = await self.tracker.begin(website_id, sync_type)
        state = PagedSyncState(sync_type=sync_type, page_size=self.page_size)
        log = logger.bind(website_id=website_id, sync_type=sync_type, run_id=run_id)

        try:
            while not state.is_terminal:
                checkpoint()
                state.start_fetch()
                entities = await fetch_page(state.page)
                await self.sleep(self.settings.sync_page_delay_seconds)

                state.page_fetched(len(entities))
                if state.is_terminal:
                    break

                for entity in entities:
                    checkpoint()
                    await reconcile(website, entity)
                    await self.session.commit()
                    state.entity_done()

                log.debug("Page synced", page=state.page, processed=state.processed)
                state.page_done(len(entities))
        except Exception as e:
            await self.session.rollback()
            kind = _error_kind(e)
            message = str(e) or e.__class__.__name__
            if not state.is_terminal:
                state.fail(message)
            await self.tracker.fail(run_id, message, details={**state.to_dict(), "kind": kind})
            log.error(
                "Sync phase failed",
                error=message,
                kind=kind,
                page=state.page,
                processed=state.processed,
            )
            raise SyncPhaseError(sync_type, message, kind, state.processed) from e

        await self.tracker.complete(run_id, state.processed)
        website.last_sync_at = self.clock()
        await self.session.commit()
        log.info("Sync phase completed", processed=state.processed)
        return state.processed
