"""Sync entrypoint - Standalone script for running a single ship sync.

Usage:
    python -m shipsync.sync_entrypoint

Exits non-zero when the run ends in ``failed`` so cron wrappers and
container schedulers can alert on it.
"""

import asyncio
import sys

from shipsync.core.db import SessionLocal
from shipsync.core.logging import get_logger
from shipsync.models.sync_status import SyncStatus
from shipsync.services.sync_service import ShipSyncService

logger = get_logger("sync_entrypoint")


async def run_sync_job() -> SyncStatus:
    """Run one ship sync against the configured database."""
    with SessionLocal() as db:
        service = ShipSyncService(db)
        return await service.run()


def main():
    """Main entry point for the ship sync."""
    logger.info("Ship sync starting...")
    record = asyncio.run(run_sync_job())

    logger.info(
        f"Ship sync finished: status={record.status} version={record.sync_version} "
        f"ships={record.ship_count} new={record.new_ships} updated={record.updated_ships}"
    )

    if record.status == "failed":
        sys.exit(1)

    return record


if __name__ == "__main__":
    main()
