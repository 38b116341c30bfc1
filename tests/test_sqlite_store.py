"""Tests for the SQLite repositories."""

import sqlite3
from datetime import timedelta

import pytest

from good_steward.adapters.sqlite_store import (
    SqliteConsumptionRepository,
    SqliteDatabase,
    SqliteProfileRepository,
    SqliteScanRepository,
)
from good_steward.domain.nutrition import NutritionData, PortionNutrition
from good_steward.domain.scans import ConsumptionRecord
from good_steward.errors import StorageError
from good_steward.services.ledger import ConsumptionLedger
from good_steward.services.scans import ScanCacheService
from tests.conftest import NOW, TZ, FakeClock, make_scan


@pytest.fixture
def database(tmp_path) -> SqliteDatabase:
    db = SqliteDatabase(tmp_path / "store" / "good_steward.db")
    db.init_schema()
    return db


def test_scan_roundtrip(database: SqliteDatabase) -> None:
    repository = SqliteScanRepository(database)
    scan = make_scan(
        allergens=frozenset({"en:milk"}),
        traces=frozenset({"en:nuts"}),
        nutrition=NutritionData(sugar_100g=4.5, nova=3, nutriscore="c"),
    )

    repository.upsert_scan(scan)

    assert repository.get_scan(scan.barcode) == scan
    assert repository.get_scan("missing") is None
    assert repository.count() == 1


def test_scan_upsert_replaces_facts(database: SqliteDatabase) -> None:
    repository = SqliteScanRepository(database)
    repository.upsert_scan(make_scan("111", name="First"))
    repository.upsert_scan(make_scan("111", name="Second", nutrition=None))

    stored = repository.get_scan("111")

    assert stored.name == "Second"
    assert stored.nutrition is None
    assert repository.count() == 1


def test_list_scans_most_recent_first(database: SqliteDatabase) -> None:
    repository = SqliteScanRepository(database)
    repository.upsert_scan(make_scan("old", timestamp=NOW - timedelta(days=1)))
    repository.upsert_scan(make_scan("new", timestamp=NOW))

    assert [scan.barcode for scan in repository.list_scans()] == ["new", "old"]

    repository.delete_scan("new")
    assert [scan.barcode for scan in repository.list_scans()] == ["old"]
    repository.clear()
    assert repository.count() == 0


def test_consumption_queries(database: SqliteDatabase) -> None:
    repository = SqliteConsumptionRepository(database)
    first = ConsumptionRecord(
        barcode="111",
        consumed_at=NOW - timedelta(hours=5),
        portion_grams=40,
        portion_nutrition=PortionNutrition(calories=90, sugar=2.1),
    )
    second = ConsumptionRecord(
        barcode="111", consumed_at=NOW.astimezone(TZ), portion_grams=60
    )
    repository.append(first)
    repository.append(second)

    assert repository.exists(first.id) is True
    assert repository.exists("unknown") is False
    assert repository.list_for_barcode("111") == [second, first]
    assert repository.list_between(NOW - timedelta(hours=6), NOW) == [first]
    assert repository.list_all() == [second, first]

    repository.clear()
    assert repository.list_all() == []


def test_non_positive_grams_rejected_by_schema(database: SqliteDatabase) -> None:
    repository = SqliteConsumptionRepository(database)

    with pytest.raises(StorageError):
        repository.append(
            ConsumptionRecord(barcode="111", consumed_at=NOW, portion_grams=-1)
        )


def test_profile_roundtrip(database: SqliteDatabase) -> None:
    repository = SqliteProfileRepository(database)
    assert repository.load_profile() is None

    repository.save_profile({"diabetes_mode": True, "allergens": ["en:milk"]})
    repository.save_profile({"diabetes_mode": False, "allergens": []})

    assert repository.load_profile() == {"diabetes_mode": False, "allergens": []}
    repository.delete_profile()
    assert repository.load_profile() is None


def test_corrupt_json_raises_storage_error(database: SqliteDatabase) -> None:
    with sqlite3.connect(database.path) as conn:
        conn.execute(
            "INSERT INTO scans (barcode, name, nutrition, scanned_at) "
            "VALUES ('bad', 'Bad', '{not json', '2024-03-15T12:00:00+00:00')"
        )
    conn.close()

    with pytest.raises(StorageError):
        SqliteScanRepository(database).get_scan("bad")


def test_service_over_sqlite_keeps_consumptions(database: SqliteDatabase) -> None:
    service = ScanCacheService(
        repository=SqliteScanRepository(database),
        ledger=ConsumptionLedger(SqliteConsumptionRepository(database)),
        timezone=TZ,
        clock=FakeClock(),
    )
    scan = make_scan("111", nutrition=NutritionData(calories_100g=200))
    service.save(scan)
    record = service.add_consumption("111", 50)

    service.save(make_scan("111", name="Renamed"))
    reloaded = ScanCacheService(
        repository=SqliteScanRepository(database),
        ledger=ConsumptionLedger(SqliteConsumptionRepository(database)),
        timezone=TZ,
    ).get("111")

    assert reloaded.name == "Renamed"
    assert reloaded.consumptions == (record,)
    assert reloaded.consumptions[0].portion_nutrition.calories == 100
