"""Celery application for sync worker."""

from celery import Celery
from celery.schedules import crontab

from profit_service.config import get_settings

settings = get_settings()


def _sync_schedule(interval_minutes: int) -> crontab:
    """Crontab firing every ``interval_minutes`` (whole hours past 59)."""
    if interval_minutes < 60:
        return crontab(minute=f"*/{interval_minutes}")
    return crontab(minute=0, hour=f"*/{interval_minutes // 60}")


# Create Celery app
app = Celery(
    "sync_worker",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
    include=[
        "sync_worker.tasks.sync_websites",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=int(settings.sync_timeout_seconds) + 300,
    task_soft_time_limit=int(settings.sync_timeout_seconds) + 240,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_queue="sync",
    task_routes={
        "sync_worker.tasks.*": {"queue": "sync"},
    },
)

# Beat schedule for periodic tasks
app.conf.beat_schedule = {
    "sync-enabled-websites": {
        "task": "sync_worker.tasks.sync_websites.sync_enabled_websites",
        "schedule": _sync_schedule(settings.sync_interval_minutes),
    },
}


def run() -> None:
    """Run the Celery worker."""
    app.worker_main(["worker", "--loglevel=info", "-Q", "sync"])


if __name__ == "__main__":
    run()
