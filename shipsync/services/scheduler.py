"""Recurring ship sync scheduler.

Owned by the application lifespan (or a test) rather than living as module
state. Every run, whether cron, catch-up or manual, goes through one
``asyncio.Lock`` so two runs never write the catalog at the same time.

Cron expressions are evaluated in UTC.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from croniter import croniter
from sqlalchemy.orm import Session

from shipsync.core.clock import as_utc, utcnow
from shipsync.core.config import settings
from shipsync.core.logging import get_logger
from shipsync.ingestion.base import BaseSource
from shipsync.ingestion.fleetyards_client import FleetYardsClient
from shipsync.models.sync_status import SyncStatus
from shipsync.services.ship_storage import ShipStorage
from shipsync.services.sync_service import ShipSyncService

log = get_logger("sync_scheduler")


class ShipSyncScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        source_factory: Callable[[], BaseSource] = FleetYardsClient,
        schedule: Optional[str] = None,
        enabled: Optional[bool] = None,
        catchup_after: Optional[timedelta] = None,
    ):
        self._session_factory = session_factory
        self._source_factory = source_factory
        self.schedule = schedule or settings.SHIP_SYNC_CRON_SCHEDULE
        self.enabled = settings.SHIP_SYNC_ENABLED if enabled is None else enabled
        self.catchup_after = catchup_after or timedelta(hours=settings.SHIP_SYNC_CATCHUP_HOURS)
        self._lock = asyncio.Lock()
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        """True while a sync run holds the lock."""
        return self._lock.locked()

    @property
    def is_started(self) -> bool:
        return bool(self._tasks)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def start(self) -> bool:
        """Start the cron loop and the startup catch-up check.

        Returns False when scheduling is disabled or the expression is invalid.
        """
        if not self.enabled:
            log.info("Ship sync scheduling disabled (SHIP_SYNC_ENABLED=false)")
            return False

        if not croniter.is_valid(self.schedule):
            log.error(f"Invalid ship sync cron schedule: {self.schedule!r}")
            return False

        if self._tasks:
            return True

        self._tasks = [
            asyncio.create_task(self._cron_loop(), name="ship-sync-cron"),
            asyncio.create_task(self.catch_up_if_overdue(), name="ship-sync-catch-up"),
        ]
        log.info(f"Ship sync scheduled: {self.schedule}")
        return True

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        log.info("Ship sync scheduler stopped")

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------
    async def run_now(self, trigger: str = "manual") -> SyncStatus:
        """Run a sync, waiting for any run already in progress to finish first."""
        async with self._lock:
            return await self._run(trigger)

    async def catch_up_if_overdue(self) -> Optional[SyncStatus]:
        """Run immediately if the last sync is missing or older than the catch-up window.

        The window sits well beyond the regular interval, so ordinary schedule
        jitter never triggers an extra run.
        """
        try:
            async with self._lock:
                if not self.is_overdue():
                    log.info("Ship sync is up to date; no catch-up needed")
                    return None
                log.info("Ship sync is overdue, running now...")
                return await self._run("catch-up")
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Overdue ship sync check failed: {exc}")
            return None

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        with self._session_factory() as db:
            latest = ShipStorage(db).get_latest_sync_status()
            if latest is None:
                return True
            return as_utc(latest.last_sync_at) < now - self.catchup_after

    def next_run_after(self, moment: datetime) -> datetime:
        return croniter(self.schedule, moment).get_next(datetime)

    async def _run(self, trigger: str) -> SyncStatus:
        log.info(f"Ship sync triggered ({trigger})")
        with self._session_factory() as db:
            service = ShipSyncService(db, source=self._source_factory())
            return await service.run()

    async def _cron_loop(self) -> None:
        while True:
            now = utcnow()
            next_run = self.next_run_after(now)
            log.info(f"Next ship sync at {next_run.isoformat()}")
            try:
                await asyncio.sleep(max((next_run - now).total_seconds(), 0))
                await self.run_now(trigger="cron")
            except asyncio.CancelledError:
                log.info("Ship sync cron loop cancelled")
                break
            except Exception as exc:  # noqa: BLE001
                # Keep the schedule alive; the next tick tries again
                log.exception(f"Scheduled ship sync failed: {exc}")
