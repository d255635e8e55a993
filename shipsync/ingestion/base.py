"""Abstract source interface for ingestion."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple


@dataclass
class FetchResult:
    """Everything a source managed to collect, plus readable page errors."""

    ships: List[Dict[str, Any]] = field(default_factory=list)
    pages_processed: int = 0
    errors: List[str] = field(default_factory=list)


class BaseSource(ABC):
    """Abstract base class for catalog sources."""

    name: str

    @abstractmethod
    async def fetch(self) -> FetchResult:
        """Fetch every raw record the source currently lists."""

    @staticmethod
    def upstream_timestamp(record: Any) -> str:
        if not isinstance(record, dict):
            return ""
        return str(record.get("updatedAt") or record.get("lastUpdatedAt") or "")

    @staticmethod
    def filter_unchanged(
        records: List[Any], stored_timestamps: Mapping[str, str]
    ) -> Tuple[List[Any], int]:
        """Drop records whose upstream timestamp matches the stored one.

        Returns the records still to process and how many were skipped.
        Records without a usable id or timestamp are always kept.
        """
        changed: List[Any] = []
        unchanged = 0
        for record in records:
            record_id = record.get("id") if isinstance(record, dict) else None
            stored = stored_timestamps.get(record_id.lower()) if isinstance(record_id, str) else None
            if stored and stored == BaseSource.upstream_timestamp(record):
                unchanged += 1
                continue
            changed.append(record)
        return changed, unchanged
