from shipsync.api.routes.health import router as health_router
from shipsync.api.routes.ships import router as ships_router
from shipsync.api.routes.sync import router as sync_router

__all__ = ["health_router", "ships_router", "sync_router"]
