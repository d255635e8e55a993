"""Ship storage tests (upserts, lookups, search, aggregation, audit log)"""

import uuid
from datetime import timedelta

import pytest

from shipsync.core.clock import utcnow
from shipsync.ingestion.transform import prepare_ships
from shipsync.models import ShipDocument, SyncStatus
from shipsync.services.ship_storage import ShipFilters, ShipStorage


@pytest.fixture
def storage(db):
    return ShipStorage(db)


def documents(raws, sync_version=1):
    return prepare_ships(raws, sync_version).documents


@pytest.fixture
def seeded(storage, ship_factory):
    raws = [
        ship_factory(1, name="Aegis Gladius", slug="gladius", size="small"),
        ship_factory(2, name="Aegis Hammerhead", slug="hammerhead", size="large"),
        ship_factory(
            3,
            name="Cutlass Black",
            slug="cutlass-black",
            size="medium",
            classification="multi_role",
            manufacturer={"name": "Drake Interplanetary", "code": "DRAK", "slug": "drake"},
        ),
        ship_factory(
            4,
            name="Cutlass Red",
            slug="cutlass-red",
            size="medium",
            classification="support",
            productionStatus="in-concept",
            manufacturer={"name": "Drake Interplanetary", "code": "DRAK", "slug": "drake"},
        ),
        ship_factory(
            5,
            name="Avenger Titan",
            slug="avenger-titan",
            manufacturer={"name": "Roberts Space Industries", "code": "RSI", "slug": "rsi"},
        ),
    ]
    storage.upsert_ships(documents(raws))
    return raws


class TestUpsert:
    def test_inserts_new_ships(self, storage, ship_factory):
        result = storage.upsert_ships(documents([ship_factory(i) for i in range(1, 4)]))

        assert result.new_ships == 3
        assert result.updated_ships == 0
        assert result.failed_ships == 0
        assert storage.get_ship_count() == 3

    def test_repeat_is_a_no_op(self, storage, ship_factory):
        docs = documents([ship_factory(i) for i in range(1, 4)])
        storage.upsert_ships(docs)

        result = storage.upsert_ships(docs)

        assert result.new_ships == 0
        assert result.updated_ships == 0
        assert result.unchanged_ships == 3
        assert storage.get_ship_count() == 3

    def test_update_preserves_created_at(self, storage, ship_factory):
        storage.upsert_ships(documents([ship_factory(1)]))
        before = storage.get_ship_by_slug("ship-1")
        created_at = before.created_at

        result = storage.upsert_ships(documents([ship_factory(1, name="Renamed")], sync_version=2))

        after = storage.get_ship_by_slug("ship-1")
        assert result.updated_ships == 1
        assert after.name == "Renamed"
        assert after.sync_version == 2
        assert after.created_at == created_at
        assert after.updated_at >= created_at

    def test_empty_input(self, storage):
        result = storage.upsert_ships([])
        assert (result.new_ships, result.updated_ships, result.unchanged_ships, result.failed_ships) == (0, 0, 0, 0)

    def test_bulk_failure_falls_back_to_individual_writes(self, storage, ship_factory):
        docs = documents([ship_factory(i) for i in range(1, 4)])
        # Violates NOT NULL, so the single bulk statement fails as a whole
        docs[1]["name"] = None

        result = storage.upsert_ships(docs)

        assert result.new_ships == 2
        assert result.failed_ships == 1
        assert storage.get_ship_count() == 2
        assert storage.get_ship_by_slug("ship-2") is None

    def test_upsert_never_deletes(self, storage, ship_factory):
        storage.upsert_ships(documents([ship_factory(i) for i in range(1, 4)]))
        storage.upsert_ships(documents([ship_factory(1)], sync_version=2))

        assert storage.get_ship_count() == 3


class TestLookups:
    def test_by_fleetyards_id_is_case_insensitive(self, storage, seeded):
        ship = storage.get_ship_by_fleetyards_id(seeded[0]["id"].upper())
        assert ship is not None
        assert ship.slug == "gladius"

    def test_by_id_or_slug(self, storage, seeded):
        assert storage.get_ship_by_id_or_slug("hammerhead").name == "Aegis Hammerhead"
        assert storage.get_ship_by_id_or_slug(seeded[1]["id"]).name == "Aegis Hammerhead"
        assert storage.get_ship_by_id_or_slug("no-such-ship") is None
        assert storage.get_ship_by_id_or_slug(str(uuid.uuid4())) is None

    def test_batch_follows_request_order(self, storage, seeded):
        ids = [seeded[2]["id"], seeded[0]["id"], str(uuid.uuid4()), seeded[0]["id"]]
        ships = storage.get_ships_by_fleetyards_ids(ids)
        assert [s.slug for s in ships] == ["cutlass-black", "gladius"]

    def test_timestamps_for_delta(self, storage, seeded):
        timestamps = storage.get_ship_timestamps()
        assert len(timestamps) == 5
        assert timestamps[seeded[0]["id"]] == "2024-01-01T00:00:00Z"


class TestFindShips:
    def test_search_falls_back_to_name_match(self, storage, seeded):
        # SQLite has no full-text search, so the substring fallback serves this
        page = storage.find_ships(ShipFilters(search="GLAD"))
        assert page.total == 1
        assert page.items[0].slug == "gladius"

    def test_search_escapes_wildcards(self, storage, seeded):
        page = storage.find_ships(ShipFilters(search="%"))
        assert page.total == 0

    def test_filters_combine(self, storage, seeded):
        page = storage.find_ships(ShipFilters(manufacturer="drake", size="medium"))
        assert page.total == 2
        assert [s.name for s in page.items] == ["Cutlass Black", "Cutlass Red"]

        page = storage.find_ships(ShipFilters(manufacturer="drake", production_status="in-concept"))
        assert [s.slug for s in page.items] == ["cutlass-red"]

        page = storage.find_ships(ShipFilters(classification="multi_role"))
        assert [s.slug for s in page.items] == ["cutlass-black"]

    def test_search_with_filter(self, storage, seeded):
        page = storage.find_ships(ShipFilters(search="cutlass", classification="support"))
        assert [s.slug for s in page.items] == ["cutlass-red"]

    def test_pagination(self, storage, seeded):
        page = storage.find_ships(ShipFilters(page=2, page_size=2))
        assert page.total == 5
        assert page.total_pages == 3
        assert page.page == 2
        assert [s.name for s in page.items] == ["Avenger Titan", "Cutlass Black"]

    def test_empty_result(self, storage, seeded):
        page = storage.find_ships(ShipFilters(manufacturer="origin"))
        assert page.total == 0
        assert page.total_pages == 0
        assert page.items == []

    def test_document_shape(self, storage, seeded):
        ship = storage.find_ships(ShipFilters(search="gladius")).items[0]
        assert ship.manufacturer.slug == "aegis-dynamics"
        assert ship.crew.min == 1
        assert ship.images.angledViewMedium == "https://img.test/angled-medium.jpg"


class TestManufacturers:
    def test_counts_sorted_by_name(self, storage, seeded):
        manufacturers = storage.get_manufacturers()
        assert [(m.name, m.ship_count) for m in manufacturers] == [
            ("Aegis Dynamics", 2),
            ("Drake Interplanetary", 2),
            ("Roberts Space Industries", 1),
        ]
        assert manufacturers[1].code == "DRAK"
        assert manufacturers[1].slug == "drake"

    def test_empty_catalog(self, storage):
        assert storage.get_manufacturers() == []


class TestSyncAuditLog:
    def _record(self, version, started_at, status="success"):
        return SyncStatus(
            sync_version=version,
            last_sync_at=started_at,
            ship_count=10,
            status=status,
            errors=[],
        )

    def test_latest_and_history(self, storage):
        now = utcnow()
        storage.save_sync_status(self._record(1, now - timedelta(days=2)))
        storage.save_sync_status(self._record(2, now - timedelta(days=1), status="partial"))
        storage.save_sync_status(self._record(3, now, status="failed"))

        latest = storage.get_latest_sync_status()
        assert latest.sync_version == 3
        assert latest.status == "failed"

        history = storage.get_sync_history(limit=2)
        assert [r.sync_version for r in history] == [3, 2]

    def test_no_runs_yet(self, storage):
        assert storage.get_latest_sync_status() is None
        assert storage.get_sync_history() == []

    def test_records_are_appended(self, storage, db):
        now = utcnow()
        storage.save_sync_status(self._record(1, now))
        storage.save_sync_status(self._record(2, now))
        assert db.query(SyncStatus).count() == 2
        assert db.query(ShipDocument).count() == 0
