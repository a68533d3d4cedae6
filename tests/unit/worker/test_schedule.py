"""Unit tests for the sync worker's Celery configuration."""

from celery.schedules import crontab

from sync_worker.main import _sync_schedule, app


def test_beat_runs_enabled_website_sync() -> None:
    entry = app.conf.beat_schedule["sync-enabled-websites"]
    assert entry["task"] == "sync_worker.tasks.sync_websites.sync_enabled_websites"
    assert isinstance(entry["schedule"], crontab)


def test_sub_hour_intervals_use_minute_steps() -> None:
    schedule = _sync_schedule(30)
    assert schedule.minute == {0, 30}
    assert schedule.hour == set(range(24))


def test_hour_intervals_use_hour_steps() -> None:
    schedule = _sync_schedule(120)
    assert schedule.minute == {0}
    assert schedule.hour == set(range(0, 24, 2))
