"""Scheduler tests (catch-up window, enable flag, run lock, cron evaluation)"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from shipsync.core.clock import utcnow
from shipsync.ingestion.base import BaseSource, FetchResult
from shipsync.models import SyncStatus
from shipsync.services.scheduler import ShipSyncScheduler
from shipsync.services.ship_storage import ShipStorage


class SlowSource(BaseSource):
    """Yields to the event loop mid-fetch and tracks overlapping runs."""

    name = "slow"
    active = 0
    max_active = 0

    def __init__(self, ships):
        self.ships = ships

    async def fetch(self) -> FetchResult:
        SlowSource.active += 1
        SlowSource.max_active = max(SlowSource.max_active, SlowSource.active)
        await asyncio.sleep(0.01)
        SlowSource.active -= 1
        return FetchResult(ships=list(self.ships), pages_processed=1)


def record_run(session_factory, hours_ago):
    with session_factory() as db:
        ShipStorage(db).save_sync_status(
            SyncStatus(
                sync_version=1,
                last_sync_at=utcnow() - timedelta(hours=hours_ago),
                ship_count=0,
                status="success",
                errors=[],
            )
        )


@pytest.fixture
def scheduler_for(session_factory, make_source, ship_factory):
    def build(**kwargs):
        kwargs.setdefault("source_factory", lambda: make_source([ship_factory(1), ship_factory(2)]))
        kwargs.setdefault("enabled", True)
        return ShipSyncScheduler(session_factory, **kwargs)

    return build


class TestCatchUp:
    def test_overdue_without_any_run(self, scheduler_for):
        assert scheduler_for().is_overdue() is True

    def test_recent_run_is_not_overdue(self, scheduler_for, session_factory):
        record_run(session_factory, hours_ago=48)
        assert scheduler_for().is_overdue() is False

    def test_old_run_is_overdue(self, scheduler_for, session_factory):
        record_run(session_factory, hours_ago=73)
        assert scheduler_for().is_overdue() is True

    def test_custom_window(self, scheduler_for, session_factory):
        record_run(session_factory, hours_ago=2)
        assert scheduler_for(catchup_after=timedelta(hours=1)).is_overdue() is True

    @pytest.mark.asyncio
    async def test_catch_up_runs_when_overdue(self, scheduler_for):
        record = await scheduler_for().catch_up_if_overdue()

        assert record is not None
        assert record.status == "success"
        assert record.new_ships == 2

    @pytest.mark.asyncio
    async def test_catch_up_skips_when_current(self, scheduler_for, session_factory, make_source):
        record_run(session_factory, hours_ago=1)
        source = make_source([])

        record = await scheduler_for(source_factory=lambda: source).catch_up_if_overdue()

        assert record is None
        assert source.calls == 0


class TestLifecycle:
    def test_disabled_does_not_start(self, scheduler_for):
        scheduler = scheduler_for(enabled=False)
        assert scheduler.start() is False
        assert scheduler.is_started is False

    def test_invalid_cron_does_not_start(self, scheduler_for):
        scheduler = scheduler_for(schedule="every other tuesday")
        assert scheduler.start() is False
        assert scheduler.is_started is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, scheduler_for):
        scheduler = scheduler_for()

        assert scheduler.start() is True
        assert scheduler.is_started is True

        await scheduler.stop()
        assert scheduler.is_started is False

    def test_next_run_is_utc_cron_tick(self, scheduler_for):
        scheduler = scheduler_for(schedule="0 0 */2 * *")
        moment = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert scheduler.next_run_after(moment) == datetime(2024, 1, 3, 0, 0, tzinfo=timezone.utc)


class TestRunLock:
    @pytest.mark.asyncio
    async def test_runs_never_overlap(self, scheduler_for, ship_factory):
        SlowSource.active = SlowSource.max_active = 0
        scheduler = scheduler_for(source_factory=lambda: SlowSource([ship_factory(1)]))

        first, second = await asyncio.gather(
            scheduler.run_now(trigger="cron"),
            scheduler.run_now(trigger="manual"),
        )

        assert SlowSource.max_active == 1
        assert sorted([first.sync_version, second.sync_version]) == [1, 2]
        assert scheduler.is_running is False
