"""Sync routes - manual trigger and run history."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shipsync.api.deps import get_db, get_scheduler
from shipsync.core.logging import get_logger
from shipsync.schemas.api import SyncRunOut, SyncTriggerResponse
from shipsync.services.scheduler import ShipSyncScheduler
from shipsync.services.ship_storage import ShipStorage

router = APIRouter(prefix="/sync", tags=["sync"])
log = get_logger("sync_routes")


@router.post("/ships", response_model=SyncTriggerResponse)
async def trigger_ship_sync(scheduler: ShipSyncScheduler = Depends(get_scheduler)):
    """
    Run a ship sync now and return its audit record.

    Waits for a sync already in progress (cron or manual) to finish first.
    """
    log.info("Ship sync triggered via API")
    record = await scheduler.run_now(trigger="api")

    if record.errors:
        log.warning(f"Ship sync completed with errors: {record.errors[:10]}")

    return SyncTriggerResponse(
        success=record.status != "failed",
        result=SyncRunOut.model_validate(record),
    )


@router.get("/runs", response_model=list[SyncRunOut])
def list_sync_runs(
    limit: int = Query(10, ge=1, le=50, description="Number of runs to return"),
    db: Session = Depends(get_db),
):
    """Most recent sync runs, newest first."""
    return [SyncRunOut.model_validate(run) for run in ShipStorage(db).get_sync_history(limit)]
