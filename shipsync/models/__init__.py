from shipsync.models.base import Base
from shipsync.models.ships import IMAGE_KEYS, ShipDocument
from shipsync.models.sync_status import SYNC_TYPE, SyncStatus

__all__ = [
    "Base",
    "IMAGE_KEYS",
    "ShipDocument",
    "SYNC_TYPE",
    "SyncStatus",
]
