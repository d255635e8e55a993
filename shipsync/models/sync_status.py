"""Append-only audit log, one row per sync run. Never updated after insert."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shipsync.models.base import Base, JSONDocument

SYNC_TYPE = "ship-sync"


class SyncStatus(Base):
    __tablename__ = "sync_status"

    run_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False, default=SYNC_TYPE)

    sync_version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Run start time
    last_sync_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    ship_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_ships: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_ships: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unchanged_ships: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_ships: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,  # success | partial | failed
    )

    errors: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)

    pages_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (Index("ix_sync_status_type_last_sync_at", "type", "last_sync_at"),)
