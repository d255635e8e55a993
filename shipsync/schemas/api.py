import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shipsync.schemas.fleetyards import FleetYardsId


class CamelModel(BaseModel):
    """Responses are serialized with camelCase keys for the web frontend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ManufacturerRef(CamelModel):
    name: str
    code: str
    slug: str


class CrewOut(CamelModel):
    min: int = 0
    max: int = 0


class ShipImages(BaseModel):
    # Keys are already camelCase in storage
    store: Optional[str] = None
    angledView: Optional[str] = None
    angledViewMedium: Optional[str] = None
    sideView: Optional[str] = None
    sideViewMedium: Optional[str] = None
    topView: Optional[str] = None
    topViewMedium: Optional[str] = None
    frontView: Optional[str] = None
    frontViewMedium: Optional[str] = None
    fleetchartImage: Optional[str] = None


class ShipOut(CamelModel):
    """Ship document as served by the query API."""

    fleetyards_id: str
    slug: str
    name: str
    sc_identifier: Optional[str] = None
    manufacturer: ManufacturerRef
    classification: str = ""
    classification_label: str = ""
    focus: str = ""
    size: str = ""
    production_status: str = ""
    crew: CrewOut
    cargo: float = 0
    length: float = 0
    beam: float = 0
    height: float = 0
    mass: float = 0
    scm_speed: Optional[float] = None
    hydrogen_fuel_tank_size: Optional[float] = None
    quantum_fuel_tank_size: Optional[float] = None
    pledge_price: Optional[float] = None
    price: Optional[float] = None
    description: Optional[str] = None
    store_url: Optional[str] = None
    images: ShipImages
    synced_at: datetime
    sync_version: int
    fleetyards_updated_at: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ShipPage(CamelModel):
    items: list[ShipOut]
    page: int
    page_size: int
    total: int
    total_pages: int


class ShipList(CamelModel):
    items: list[ShipOut]


class ManufacturerOut(CamelModel):
    name: str
    code: str
    slug: str
    ship_count: int


class ManufacturerList(CamelModel):
    items: list[ManufacturerOut]


class BatchRequest(BaseModel):
    ids: list[FleetYardsId] = Field(..., min_length=1, max_length=50)


class SyncStatusSummary(CamelModel):
    last_sync_at: Optional[datetime] = None
    ship_count: int = 0
    status: str = "unknown"
    sync_version: int = 0


class SyncRunOut(CamelModel):
    run_id: uuid.UUID
    sync_version: int
    last_sync_at: datetime
    ship_count: int
    new_ships: int
    updated_ships: int
    unchanged_ships: int
    skipped_ships: int
    duration_ms: int
    status: str
    errors: list[str]
    pages_processed: int


class SyncTriggerResponse(BaseModel):
    success: bool
    result: SyncRunOut


class HealthResponse(BaseModel):
    database: str
    last_sync_status: str | None
