"""Shared fixtures: in-memory SQLite catalog, raw record factory, fake sources."""

import os
import uuid

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shipsync.ingestion.base import BaseSource, FetchResult
from shipsync.models import Base


def make_raw_ship(index: int, **overrides) -> dict:
    """A raw FleetYards record as the API returns it."""
    record = {
        "id": str(uuid.UUID(int=index)),
        "name": f"Ship {index}",
        "slug": f"ship-{index}",
        "scIdentifier": f"SHIP_{index}",
        "manufacturer": {"name": "Aegis Dynamics", "code": "AEGS", "slug": "aegis-dynamics"},
        "classification": "combat",
        "classificationLabel": "Combat",
        "focus": "Light Fighter",
        "size": "small",
        "productionStatus": "flight-ready",
        "crew": {"min": 1, "max": 1},
        "cargo": 0,
        "length": 22.5,
        "beam": 16.0,
        "height": 5.5,
        "mass": 48000,
        "storeImage": "https://img.test/store.jpg",
        "angledView": {
            "source": "https://img.test/angled.jpg",
            "small": "https://img.test/angled-small.jpg",
            "medium": "https://img.test/angled-medium.jpg",
        },
        "updatedAt": "2024-01-01T00:00:00Z",
    }
    record.update(overrides)
    return record


class FakeSource(BaseSource):
    """Source returning a canned fetch result."""

    name = "fake"

    def __init__(self, ships=None, errors=None, pages_processed=1):
        self.ships = list(ships or [])
        self.errors = list(errors or [])
        self.pages_processed = pages_processed
        self.calls = 0

    async def fetch(self) -> FetchResult:
        self.calls += 1
        return FetchResult(
            ships=list(self.ships),
            pages_processed=self.pages_processed if self.ships else 0,
            errors=list(self.errors),
        )


@pytest.fixture
def engine():
    """Fresh in-memory database per test, shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def ship_factory():
    return make_raw_ship


@pytest.fixture
def make_source():
    return FakeSource
