"""Sync run bookkeeping.

A run is ``running`` from ``begin`` until exactly one of ``complete`` or
``fail``. Each call commits so the record survives a rollback of the work it
describes.
"""

from datetime import datetime
from typing import Any, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.exceptions import InvalidStateTransition
from profit_service.infrastructure.database.models import SyncLog, SyncRunStatus
from shared.constants import DEFAULT_SYNC_RUNS_LIMIT
from shared.money import utcnow

logger = structlog.get_logger()


class SyncRunTracker:
    """Records start, completion and failure of sync runs."""

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    async def begin(self, website_id: int, sync_type: str) -> int:
        run = SyncLog(
            website_id=website_id,
            sync_type=sync_type,
            status=SyncRunStatus.RUNNING.value,
            started_at=self.clock(),
            completed_at=None,
            records_processed=None,
            error_message=None,
            error_details=None,
        )
        self.session.add(run)
        await self.session.commit()
        logger.info("Sync run started", run_id=run.id, website_id=website_id, sync_type=sync_type)
        return run.id

    async def complete(self, run_id: int, processed_count: int) -> SyncLog:
        run = await self._running(run_id, SyncRunStatus.COMPLETED)
        run.status = SyncRunStatus.COMPLETED.value
        run.completed_at = self.clock()
        run.records_processed = processed_count
        await self.session.commit()
        logger.info("Sync run completed", run_id=run_id, records_processed=processed_count)
        return run

    async def fail(
        self, run_id: int, message: str, details: dict[str, Any] | None = None
    ) -> SyncLog:
        run = await self._running(run_id, SyncRunStatus.FAILED)
        run.status = SyncRunStatus.FAILED.value
        run.completed_at = self.clock()
        run.error_message = message
        run.error_details = details
        if details and "processed" in details:
            run.records_processed = details["processed"]
        await self.session.commit()
        logger.warning("Sync run failed", run_id=run_id, error=message)
        return run

    async def get(self, run_id: int) -> SyncLog | None:
        return await self.session.get(SyncLog, run_id)

    async def latest_runs(
        self, website_id: int, limit: int = DEFAULT_SYNC_RUNS_LIMIT
    ) -> list[SyncLog]:
        query = (
            select(SyncLog)
            .where(SyncLog.website_id == website_id)
            .order_by(SyncLog.started_at.desc(), SyncLog.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _running(self, run_id: int, target: SyncRunStatus) -> SyncLog:
        run = await self.session.get(SyncLog, run_id)
        if run is None:
            raise InvalidStateTransition("missing", target.value)
        if run.status != SyncRunStatus.RUNNING.value:
            raise InvalidStateTransition(run.status, target.value)
        return run
