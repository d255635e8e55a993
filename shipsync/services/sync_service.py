"""Ship sync orchestrator.

Pipeline: fetch -> sanity check -> delta filter -> validate/transform ->
upsert -> audit log.

Safety rules:
- an empty fetch aborts the run and keeps the previous ship count;
- a fetch below ``min_count_ratio`` of the previous count aborts the run;
- malformed records are logged and skipped, never fatal;
- every run, including aborted ones, appends exactly one audit record.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from shipsync.core.clock import utcnow
from shipsync.core.config import settings
from shipsync.core.logging import get_logger
from shipsync.ingestion.base import BaseSource
from shipsync.ingestion.fleetyards_client import FleetYardsClient
from shipsync.ingestion.transform import prepare_ships
from shipsync.models.sync_status import SYNC_TYPE, SyncStatus
from shipsync.services.ship_storage import ShipStorage, UpsertResult

log = get_logger("sync_service")


class ShipSyncService:
    """Runs one ship sync. No retry loop here; retries live in the client."""

    def __init__(
        self,
        db: Session,
        source: Optional[BaseSource] = None,
        min_count_ratio: Optional[float] = None,
    ):
        self.db = db
        self.storage = ShipStorage(db)
        self.source = source or FleetYardsClient()
        self.min_count_ratio = settings.SHIP_SYNC_MIN_COUNT_RATIO if min_count_ratio is None else min_count_ratio

    async def run(self) -> SyncStatus:
        """Run the full pipeline once and return the audit record written."""
        started_at = utcnow()
        clock_start = time.monotonic()

        previous = self.storage.get_latest_sync_status()
        previous_count = previous.ship_count if previous else 0
        sync_version = previous.sync_version + 1 if previous else 1
        log.info(f"Starting ship sync v{sync_version} (previous ship count: {previous_count})")

        fetched = await self.source.fetch()

        if not fetched.ships:
            log.error("Fetch returned 0 ships -- aborting sync to preserve existing data")
            return self._abort(
                sync_version,
                started_at,
                clock_start,
                previous_count,
                ["Fetch returned 0 ships", *fetched.errors],
                fetched.pages_processed,
            )

        if previous_count > 0 and len(fetched.ships) < previous_count * self.min_count_ratio:
            log.warning(
                f"Fetched {len(fetched.ships)} ships but expected ~{previous_count} -- aborting sync"
            )
            return self._abort(
                sync_version,
                started_at,
                clock_start,
                previous_count,
                [
                    f"Ship count dropped below {self.min_count_ratio:.0%} threshold "
                    f"({len(fetched.ships)} fetched, {previous_count} previously)",
                    *fetched.errors,
                ],
                fetched.pages_processed,
            )

        stored_timestamps = self.storage.get_ship_timestamps()
        changed, delta_unchanged = self.source.filter_unchanged(fetched.ships, stored_timestamps)
        log.info(f"Delta filter: {len(changed)} new/changed, {delta_unchanged} unchanged (skipped)")

        batch = prepare_ships(changed, sync_version)

        upsert = UpsertResult()
        if batch.documents:
            upsert = self.storage.upsert_ships(batch.documents)

        errors: List[str] = [*fetched.errors, *batch.errors]
        if upsert.failed_ships:
            errors.append(f"{upsert.failed_ships} ships failed to upsert")

        written = upsert.new_ships + upsert.updated_ships + upsert.unchanged_ships
        if written == 0 and delta_unchanged == 0:
            status = "failed"
        elif errors:
            status = "partial"
        else:
            status = "success"

        record = SyncStatus(
            type=SYNC_TYPE,
            sync_version=sync_version,
            last_sync_at=started_at,
            ship_count=self.storage.get_ship_count(),
            new_ships=upsert.new_ships,
            updated_ships=upsert.updated_ships,
            unchanged_ships=upsert.unchanged_ships + delta_unchanged,
            skipped_ships=len(batch.errors),
            duration_ms=self._elapsed_ms(clock_start),
            status=status,
            errors=errors,
            pages_processed=fetched.pages_processed,
        )
        self.storage.save_sync_status(record)

        log.info(
            f"Ship sync complete: status={record.status} ship_count={record.ship_count} "
            f"new={record.new_ships} updated={record.updated_ships} unchanged={record.unchanged_ships} "
            f"skipped={record.skipped_ships} duration_ms={record.duration_ms}"
        )
        return record

    def _abort(
        self,
        sync_version: int,
        started_at: datetime,
        clock_start: float,
        previous_count: int,
        errors: List[str],
        pages_processed: int,
    ) -> SyncStatus:
        record = SyncStatus(
            type=SYNC_TYPE,
            sync_version=sync_version,
            last_sync_at=started_at,
            ship_count=previous_count,
            new_ships=0,
            updated_ships=0,
            unchanged_ships=0,
            skipped_ships=0,
            duration_ms=self._elapsed_ms(clock_start),
            status="failed",
            errors=errors,
            pages_processed=pages_processed,
        )
        return self.storage.save_sync_status(record)

    @staticmethod
    def _elapsed_ms(clock_start: float) -> int:
        return int((time.monotonic() - clock_start) * 1000)
