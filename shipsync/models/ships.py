"""Canonical ship catalog table, one row per FleetYards model."""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shipsync.models.base import Base, JSONDocument

IMAGE_KEYS = (
    "store",
    "angledView",
    "angledViewMedium",
    "sideView",
    "sideViewMedium",
    "topView",
    "topViewMedium",
    "frontView",
    "frontViewMedium",
    "fleetchartImage",
)


class ShipDocument(Base):
    """Normalized ship record synced from FleetYards.

    ``fleetyards_id`` is the only stable identity. Slug and name can change
    upstream and are never used as the upsert key. Rows are never deleted by
    the sync pipeline.
    """

    __tablename__ = "ships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    fleetyards_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, comment="FleetYards UUID")
    slug: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sc_identifier: Mapped[str | None] = mapped_column(String(200), nullable=True)

    manufacturer_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    manufacturer_code: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    manufacturer_slug: Mapped[str] = mapped_column(String(200), nullable=False, default="", index=True)

    classification: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    classification_label: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    focus: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    size: Mapped[str] = mapped_column(String(50), nullable=False, default="", index=True)
    production_status: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)

    crew_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    crew_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cargo: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    length: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    beam: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    height: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    mass: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    scm_speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    hydrogen_fuel_tank_size: Mapped[float | None] = mapped_column(Float, nullable=True)
    quantum_fuel_tank_size: Mapped[float | None] = mapped_column(Float, nullable=True)
    pledge_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    store_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    images: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)

    # Sync metadata
    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sync_version: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    fleetyards_updated_at: Mapped[str] = mapped_column(String(64), nullable=False, default="", comment="Upstream updatedAt, used for delta filtering")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (Index("ix_ships_manufacturer_size", "manufacturer_slug", "size"),)

    def to_document(self) -> Dict[str, Any]:
        """Nested representation served by the query API."""
        return {
            "fleetyards_id": self.fleetyards_id,
            "slug": self.slug,
            "name": self.name,
            "sc_identifier": self.sc_identifier,
            "manufacturer": {
                "name": self.manufacturer_name,
                "code": self.manufacturer_code,
                "slug": self.manufacturer_slug,
            },
            "classification": self.classification,
            "classification_label": self.classification_label,
            "focus": self.focus,
            "size": self.size,
            "production_status": self.production_status,
            "crew": {"min": self.crew_min, "max": self.crew_max},
            "cargo": self.cargo,
            "length": self.length,
            "beam": self.beam,
            "height": self.height,
            "mass": self.mass,
            "scm_speed": self.scm_speed,
            "hydrogen_fuel_tank_size": self.hydrogen_fuel_tank_size,
            "quantum_fuel_tank_size": self.quantum_fuel_tank_size,
            "pledge_price": self.pledge_price,
            "price": self.price,
            "description": self.description,
            "store_url": self.store_url,
            "images": {key: (self.images or {}).get(key) for key in IMAGE_KEYS},
            "synced_at": self.synced_at,
            "sync_version": self.sync_version,
            "fleetyards_updated_at": self.fleetyards_updated_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
