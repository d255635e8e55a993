"""Validate raw FleetYards records and map them to ship documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from shipsync.core.clock import utcnow
from shipsync.core.logging import get_logger
from shipsync.schemas.fleetyards import FleetYardsShip, ImageField

log = get_logger("ingestion.transform")

# Resolution preference when picking a URL out of a view object
_FULL_SIZE_ORDER = ("source", "large", "medium", "small")
_MEDIUM_SIZE_ORDER = ("medium", "small", "source")


@dataclass
class ValidationResult:
    """Outcome of validating one raw record: either ``ship`` or ``error`` is set."""

    ship: Optional[FleetYardsShip] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.ship is not None


@dataclass
class PreparedBatch:
    documents: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return ", ".join(parts)


def validate_ship(raw: Any) -> ValidationResult:
    """Check one raw record against the minimum schema. Never raises."""
    try:
        return ValidationResult(ship=FleetYardsShip.model_validate(raw))
    except ValidationError as exc:
        name = raw.get("name") if isinstance(raw, dict) else None
        return ValidationResult(error=f'Validation failed for "{name or "unknown"}": {_describe_errors(exc)}')


def extract_image_url(image: ImageField, size: str = "source") -> Optional[str]:
    """Pick one URL out of either image layout.

    A plain string (legacy layout) is used for every resolution. For a view
    object the first non-empty URL in the preference order for ``size`` wins.
    """
    if image is None:
        return None
    if isinstance(image, str):
        return image or None

    order = _MEDIUM_SIZE_ORDER if size == "medium" else _FULL_SIZE_ORDER
    for key in order:
        url = getattr(image, key, None)
        if url:
            return url
    return None


def _upstream_timestamp(ship: FleetYardsShip) -> str:
    return ship.updated_at or ship.last_updated_at or ""


def transform_ship(ship: FleetYardsShip, sync_version: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Map a validated record onto the ``ships`` row shape.

    ``created_at`` and ``updated_at`` are owned by storage: the first is set
    on insert only, the second on every write.
    """
    now = now or utcnow()
    return {
        "fleetyards_id": ship.id.lower(),
        "slug": ship.slug,
        "name": ship.name,
        "sc_identifier": ship.sc_identifier,
        "manufacturer_name": ship.manufacturer.name,
        "manufacturer_code": ship.manufacturer.code,
        "manufacturer_slug": ship.manufacturer.slug,
        "classification": ship.classification,
        "classification_label": ship.classification_label,
        "focus": ship.focus,
        "size": ship.size,
        "production_status": ship.production_status,
        "crew_min": int(ship.crew.min),
        "crew_max": int(ship.crew.max),
        "cargo": float(ship.cargo),
        "length": float(ship.length),
        "beam": float(ship.beam),
        "height": float(ship.height),
        "mass": float(ship.mass),
        "scm_speed": ship.scm_speed,
        "hydrogen_fuel_tank_size": ship.hydrogen_fuel_tank_size,
        "quantum_fuel_tank_size": ship.quantum_fuel_tank_size,
        "pledge_price": ship.pledge_price,
        "price": ship.price,
        "description": ship.description,
        "store_url": ship.store_url,
        "images": {
            "store": extract_image_url(ship.store_image),
            "angledView": extract_image_url(ship.angled_view),
            "angledViewMedium": extract_image_url(ship.angled_view, "medium"),
            "sideView": extract_image_url(ship.side_view),
            "sideViewMedium": extract_image_url(ship.side_view, "medium"),
            "topView": extract_image_url(ship.top_view),
            "topViewMedium": extract_image_url(ship.top_view, "medium"),
            "frontView": extract_image_url(ship.front_view),
            "frontViewMedium": extract_image_url(ship.front_view, "medium"),
            "fleetchartImage": extract_image_url(ship.fleetchart_image),
        },
        "synced_at": now,
        "sync_version": sync_version,
        "fleetyards_updated_at": _upstream_timestamp(ship),
    }


def prepare_ships(raw_records: List[Any], sync_version: int) -> PreparedBatch:
    """Validate and transform a batch, collecting errors instead of raising.

    Duplicate ids (overlapping pages) collapse to the record with the newest
    upstream timestamp.
    """
    batch = PreparedBatch()
    dedup: Dict[str, Dict[str, Any]] = {}
    now = utcnow()

    for raw in raw_records:
        result = validate_ship(raw)
        if not result.ok:
            batch.errors.append(result.error)
            log.warning(result.error)
            continue

        doc = transform_ship(result.ship, sync_version, now=now)
        key = doc["fleetyards_id"]
        existing = dedup.get(key)
        if existing is None or doc["fleetyards_updated_at"] >= existing["fleetyards_updated_at"]:
            dedup[key] = doc

    batch.documents = list(dedup.values())
    valid_count = len(raw_records) - len(batch.errors)
    if valid_count != len(batch.documents):
        log.debug(
            f"Deduplicated ship documents (input={valid_count} output={len(batch.documents)})"
        )
    return batch
