"""Ship storage - catalog upserts, lookups, search and the sync audit log.

Key rules:
- Upsert keyed by ``fleetyards_id``; ``created_at`` is written on insert only.
- Nothing here deletes a ship. Disappearing upstream is not a removal.
- The audit log is insert-only.

Both write and search paths are two-tier: a preferred strategy (one bulk
``INSERT .. ON CONFLICT`` / ranked full-text query) and a fallback with the
same return contract (per-document upserts / case-insensitive name match).
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, literal_column, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shipsync.core.clock import as_utc, utcnow
from shipsync.core.logging import get_logger
from shipsync.models.ships import ShipDocument
from shipsync.models.sync_status import SYNC_TYPE, SyncStatus
from shipsync.schemas.api import ManufacturerOut, ShipOut, ShipPage
from shipsync.schemas.fleetyards import UUID_PATTERN

log = get_logger("ship_storage")

_UUID_RE = re.compile(UUID_PATTERN)

# Columns a sync run may write; created_at/updated_at are managed here
WRITABLE_FIELDS = tuple(
    column.name
    for column in ShipDocument.__table__.columns
    if column.name not in ("id", "created_at", "updated_at")
)


@dataclass
class UpsertResult:
    new_ships: int = 0
    updated_ships: int = 0
    unchanged_ships: int = 0
    failed_ships: int = 0


@dataclass
class ShipFilters:
    manufacturer: Optional[str] = None
    size: Optional[str] = None
    classification: Optional[str] = None
    production_status: Optional[str] = None
    search: Optional[str] = None
    page: int = 1
    page_size: int = 25


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value)
    return value


class ShipStorage:
    """All reads and writes against the ``ships`` and ``sync_status`` tables."""

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Upsert
    # -------------------------------------------------------------------------
    def upsert_ships(self, ships: List[Dict[str, Any]]) -> UpsertResult:
        """Insert or update ships keyed by ``fleetyards_id``.

        Documents identical to the stored row are not rewritten and count as
        unchanged, so repeating a call with the same input is a no-op.
        """
        if not ships:
            return UpsertResult()

        log.info(f"Upserting {len(ships)} ships...")
        try:
            result = self._bulk_upsert(ships)
            log.info(
                f"Bulk upsert complete: {result.new_ships} new, {result.updated_ships} updated, "
                f"{result.unchanged_ships} unchanged"
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error(f"Bulk upsert failed, falling back to individual upserts: {exc}")
            result = self._upsert_individually(ships)
            log.info(
                f"Individual upsert complete: {result.new_ships} new, {result.updated_ships} updated, "
                f"{result.unchanged_ships} unchanged, {result.failed_ships} failed"
            )
        finally:
            # Core upserts bypass the identity map
            self.db.expire_all()
        return result

    def _bulk_upsert(self, ships: List[Dict[str, Any]]) -> UpsertResult:
        existing = self._existing_rows(ship["fleetyards_id"] for ship in ships)
        result = UpsertResult()
        pending: List[Dict[str, Any]] = []

        for ship in ships:
            stored = existing.get(ship["fleetyards_id"])
            if stored is None:
                result.new_ships += 1
                pending.append(ship)
            elif self._differs(ship, stored):
                result.updated_ships += 1
                pending.append(ship)
            else:
                result.unchanged_ships += 1

        if pending:
            now = utcnow()
            self.db.execute(self._upsert_statement([self._row(ship, now) for ship in pending]))
        self.db.commit()
        return result

    def _upsert_individually(self, ships: List[Dict[str, Any]]) -> UpsertResult:
        result = UpsertResult()
        for ship in ships:
            ship_id = ship.get("fleetyards_id")
            try:
                stored = self._existing_rows([ship_id]).get(ship_id)
                if stored is not None and not self._differs(ship, stored):
                    result.unchanged_ships += 1
                    continue
                self.db.execute(self._upsert_statement([self._row(ship, utcnow())]))
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                result.failed_ships += 1
                log.error(f"Error upserting ship {ship_id} ({ship.get('name')}): {exc}")
                continue

            if stored is None:
                result.new_ships += 1
            else:
                result.updated_ships += 1

        if result.failed_ships:
            log.error(
                f"Individual upsert completed with {result.failed_ships} errors out of {len(ships)} ships"
            )
        return result

    def _existing_rows(self, fleetyards_ids: Iterable[str]) -> Dict[str, Any]:
        ids = list(set(fleetyards_ids))
        if not ids:
            return {}
        # Plain rows, not ORM entities, so nothing stale lingers in the session
        columns = [ShipDocument.__table__.c[name] for name in WRITABLE_FIELDS]
        rows = self.db.execute(select(*columns).where(ShipDocument.fleetyards_id.in_(ids))).mappings()
        return {row["fleetyards_id"]: row for row in rows}

    @staticmethod
    def _differs(ship: Dict[str, Any], stored: Any) -> bool:
        return any(
            _comparable(ship.get(name)) != _comparable(stored[name])
            for name in WRITABLE_FIELDS
        )

    @staticmethod
    def _row(ship: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        row = {name: ship.get(name) for name in WRITABLE_FIELDS}
        row["created_at"] = now
        row["updated_at"] = now
        return row

    def _upsert_statement(self, rows: List[Dict[str, Any]]):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(ShipDocument).values(rows)
        elif dialect == "sqlite":
            stmt = sqlite_insert(ShipDocument).values(rows)
        else:
            raise NotImplementedError(f"Ship upsert is not supported on {dialect}")

        # created_at only reaches the row through the INSERT branch
        update_set = {name: stmt.excluded[name] for name in WRITABLE_FIELDS if name != "fleetyards_id"}
        update_set["updated_at"] = stmt.excluded.updated_at
        return stmt.on_conflict_do_update(
            index_elements=[ShipDocument.fleetyards_id],
            set_=update_set,
        )

    # -------------------------------------------------------------------------
    # Counts and delta support
    # -------------------------------------------------------------------------
    def get_ship_count(self) -> int:
        return self.db.execute(select(func.count()).select_from(ShipDocument)).scalar() or 0

    def get_ship_timestamps(self) -> Dict[str, str]:
        """Map of fleetyards_id -> upstream updatedAt, for delta filtering."""
        stmt = select(ShipDocument.fleetyards_id, ShipDocument.fleetyards_updated_at)
        return {row.fleetyards_id: row.fleetyards_updated_at for row in self.db.execute(stmt)}

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------
    def get_ship_by_fleetyards_id(self, fleetyards_id: str) -> Optional[ShipDocument]:
        stmt = select(ShipDocument).where(ShipDocument.fleetyards_id == fleetyards_id.lower())
        return self.db.execute(stmt).scalar_one_or_none()

    def get_ship_by_slug(self, slug: str) -> Optional[ShipDocument]:
        stmt = select(ShipDocument).where(ShipDocument.slug == slug).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_ship_by_id_or_slug(self, id_or_slug: str) -> Optional[ShipDocument]:
        """UUID-shaped input is looked up by id, anything else by slug."""
        value = id_or_slug.strip()
        if _UUID_RE.match(value):
            return self.get_ship_by_fleetyards_id(value)
        return self.get_ship_by_slug(value)

    def get_ships_by_fleetyards_ids(self, fleetyards_ids: List[str]) -> List[ShipDocument]:
        """Resolve many ids in one query; results follow the request order."""
        ids = [fid.lower() for fid in fleetyards_ids]
        if not ids:
            return []
        stmt = select(ShipDocument).where(ShipDocument.fleetyards_id.in_(list(dict.fromkeys(ids))))
        found = {ship.fleetyards_id: ship for ship in self.db.execute(stmt).scalars()}
        seen = set()
        ordered = []
        for fid in ids:
            if fid in found and fid not in seen:
                ordered.append(found[fid])
                seen.add(fid)
        return ordered

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------
    def find_ships(self, filters: ShipFilters) -> ShipPage:
        """Filtered, paginated ship listing.

        A search term goes through the ranked full-text query first. If that
        fails (no text index, non-PostgreSQL backend) the same page is served
        from a case-insensitive substring match on the name.
        """
        if filters.search:
            try:
                return self._find_ships_ranked(filters)
            except SQLAlchemyError as exc:
                self.db.rollback()
                log.warning(f"Text search unavailable, falling back to name match: {exc}")
        return self._find_ships_by_name(filters)

    def _find_ships_ranked(self, filters: ShipFilters) -> ShipPage:
        language = literal_column("'english'")
        document = func.to_tsvector(
            language,
            ShipDocument.name + literal_column("' '") + ShipDocument.manufacturer_name,
        )
        query = func.plainto_tsquery(language, filters.search)
        stmt = self._apply_filters(select(ShipDocument), filters).where(document.bool_op("@@")(query))
        return self._paginate(stmt, filters, func.ts_rank(document, query).desc(), ShipDocument.name.asc())

    def _find_ships_by_name(self, filters: ShipFilters) -> ShipPage:
        stmt = self._apply_filters(select(ShipDocument), filters)
        if filters.search:
            stmt = stmt.where(ShipDocument.name.icontains(filters.search, autoescape=True))
        return self._paginate(stmt, filters, ShipDocument.name.asc())

    @staticmethod
    def _apply_filters(stmt, filters: ShipFilters):
        if filters.manufacturer:
            stmt = stmt.where(ShipDocument.manufacturer_slug == filters.manufacturer)
        if filters.size:
            stmt = stmt.where(ShipDocument.size == filters.size)
        if filters.classification:
            stmt = stmt.where(ShipDocument.classification == filters.classification)
        if filters.production_status:
            stmt = stmt.where(ShipDocument.production_status == filters.production_status)
        return stmt

    def _paginate(self, stmt, filters: ShipFilters, *order_by) -> ShipPage:
        page = max(filters.page, 1)
        page_size = max(filters.page_size, 1)

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar() or 0
        rows = self.db.execute(
            stmt.order_by(*order_by).limit(page_size).offset((page - 1) * page_size)
        ).scalars().all()

        return ShipPage(
            items=[ShipOut.model_validate(ship.to_document()) for ship in rows],
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------
    def get_manufacturers(self) -> List[ManufacturerOut]:
        """Ship count per manufacturer, sorted by name."""
        stmt = (
            select(
                ShipDocument.manufacturer_name,
                ShipDocument.manufacturer_code,
                ShipDocument.manufacturer_slug,
                func.count().label("ship_count"),
            )
            .group_by(
                ShipDocument.manufacturer_name,
                ShipDocument.manufacturer_code,
                ShipDocument.manufacturer_slug,
            )
            .order_by(ShipDocument.manufacturer_name.asc())
        )
        return [
            ManufacturerOut(
                name=row.manufacturer_name,
                code=row.manufacturer_code,
                slug=row.manufacturer_slug,
                ship_count=row.ship_count,
            )
            for row in self.db.execute(stmt)
        ]

    # -------------------------------------------------------------------------
    # Sync audit log
    # -------------------------------------------------------------------------
    def save_sync_status(self, status: SyncStatus) -> SyncStatus:
        """Append one audit record. Existing records are never touched."""
        self.db.add(status)
        self.db.commit()
        log.info(f"Sync status saved: {status.status}, version {status.sync_version}")
        return status

    def get_latest_sync_status(self) -> Optional[SyncStatus]:
        stmt = (
            select(SyncStatus)
            .where(SyncStatus.type == SYNC_TYPE)
            .order_by(SyncStatus.last_sync_at.desc(), SyncStatus.sync_version.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_sync_history(self, limit: int = 10) -> List[SyncStatus]:
        stmt = (
            select(SyncStatus)
            .where(SyncStatus.type == SYNC_TYPE)
            .order_by(SyncStatus.last_sync_at.desc(), SyncStatus.sync_version.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())
