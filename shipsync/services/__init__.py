# Services package
from shipsync.services.ship_storage import ShipFilters, ShipStorage, UpsertResult
from shipsync.services.sync_service import ShipSyncService
from shipsync.services.scheduler import ShipSyncScheduler

__all__ = [
    "ShipFilters",
    "ShipStorage",
    "UpsertResult",
    "ShipSyncService",
    "ShipSyncScheduler",
]
