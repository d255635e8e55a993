"""Ship routes - public, read-only access to the synced catalog."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from shipsync.api.deps import get_db
from shipsync.schemas.api import (
    BatchRequest,
    ManufacturerList,
    ShipList,
    ShipOut,
    ShipPage,
    SyncStatusSummary,
)
from shipsync.services.ship_storage import ShipFilters, ShipStorage

router = APIRouter(prefix="/ships", tags=["ships"])


@router.get("", response_model=ShipPage)
def list_ships(
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100, alias="pageSize"),
    manufacturer: Optional[str] = Query(None, description="Manufacturer slug"),
    size: Optional[str] = Query(None),
    classification: Optional[str] = Query(None),
    production_status: Optional[str] = Query(None, alias="productionStatus"),
    search: Optional[str] = Query(None, min_length=1, description="Free-text search on ship name"),
    db: Session = Depends(get_db),
):
    """
    Paginated, filtered ship list.

    Search uses the full-text index when available and a case-insensitive
    name match otherwise; the response shape is the same either way.
    """
    filters = ShipFilters(
        manufacturer=manufacturer,
        size=size,
        classification=classification,
        production_status=production_status,
        search=search,
        page=page,
        page_size=page_size,
    )
    return ShipStorage(db).find_ships(filters)


@router.get("/manufacturers", response_model=ManufacturerList)
def list_manufacturers(db: Session = Depends(get_db)):
    """All manufacturers with their ship counts, sorted by name."""
    return ManufacturerList(items=ShipStorage(db).get_manufacturers())


@router.get("/sync-status", response_model=SyncStatusSummary)
def get_sync_status(db: Session = Depends(get_db)):
    """When the last sync ran and how it went."""
    latest = ShipStorage(db).get_latest_sync_status()
    if latest is None:
        return SyncStatusSummary()
    return SyncStatusSummary(
        last_sync_at=latest.last_sync_at,
        ship_count=latest.ship_count,
        status=latest.status,
        sync_version=latest.sync_version,
    )


@router.post("/batch", response_model=ShipList)
def get_ships_batch(body: BatchRequest, db: Session = Depends(get_db)):
    """Resolve up to 50 FleetYards ids in a single request."""
    ships = ShipStorage(db).get_ships_by_fleetyards_ids(body.ids)
    return ShipList(items=[ShipOut.model_validate(ship.to_document()) for ship in ships])


@router.get("/{id_or_slug}", response_model=ShipOut)
def get_ship(id_or_slug: str, db: Session = Depends(get_db)):
    """Single ship by FleetYards UUID or slug."""
    ship = ShipStorage(db).get_ship_by_id_or_slug(id_or_slug)
    if not ship:
        raise HTTPException(status_code=404, detail=f"Ship '{id_or_slug}' not found")
    return ShipOut.model_validate(ship.to_document())
