"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field

import pytest

from good_steward.adapters.rows import consumption_to_row, scan_to_row
from good_steward.adapters.supabase_consumption_repository import (
    SupabaseConsumptionRepository,
)
from good_steward.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from good_steward.adapters.supabase_scan_repository import SupabaseScanRepository
from good_steward.domain.nutrition import PortionNutrition
from good_steward.domain.scans import ConsumptionRecord
from good_steward.errors import StorageError
from tests.conftest import NOW, make_scan


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None
    count: int | None = None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {
            "select": [],
            "insert": [],
            "upsert": [],
            "delete": [],
        }
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    last_upsert_conflict: str | None = None
    error: Exception | None = None
    exact_count: int | None = None
    ranges: list[tuple[int, int]] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args, count: str | None = None) -> "FakeTable":
        self._action = "select"
        self._count = count
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def upsert(  # type: ignore[no-untyped-def]
        self, payload, on_conflict: str = ""
    ) -> "FakeTable":
        self._action = "upsert"
        self.last_payload = payload
        self.last_upsert_conflict = on_conflict
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def neq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("neq", column, value))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gte", column, value))
        return self

    def lt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("lt", column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def range(self, start: int, end: int) -> "FakeTable":
        self.ranges.append((start, end))
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        count = self.exact_count if getattr(self, "_count", None) else None
        return FakeResponse(data=data, count=count)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_supabase_scan_repository_roundtrip() -> None:
    client = FakeSupabaseClient()
    scans_table = client.table("scans")
    scan = make_scan(allergens=frozenset({"en:milk"}))
    scans_table.queue("select", [scan_to_row(scan)])

    repository = SupabaseScanRepository(client)
    repository.upsert_scan(scan)
    fetched = repository.get_scan(scan.barcode)

    assert scans_table.last_upsert_conflict == "barcode"
    assert scans_table.last_payload["allergens"] == ["en:milk"]
    assert fetched == scan


def test_supabase_scan_repository_missing_and_count() -> None:
    client = FakeSupabaseClient()
    scans_table = client.table("scans")
    scans_table.queue("select", [])
    scans_table.queue("select", [{"barcode": "1"}])
    scans_table.exact_count = 2500

    repository = SupabaseScanRepository(client)

    assert repository.get_scan("missing") is None
    assert repository.count() == 2500


def test_supabase_consumption_repository() -> None:
    client = FakeSupabaseClient()
    table = client.table("consumptions")
    record = ConsumptionRecord(
        barcode="111",
        consumed_at=NOW,
        portion_grams=50,
        portion_nutrition=PortionNutrition(calories=100),
    )
    table.queue("select", [consumption_to_row(record)])
    table.queue("select", [])

    repository = SupabaseConsumptionRepository(client)
    repository.append(record)
    listed = repository.list_between(NOW, NOW.replace(hour=13))

    assert table.last_payload["portion_nutrition"] == {"calories": 100}
    assert listed == [record]
    assert ("gte", "consumed_at", "2024-03-15T12:00:00.000000+00:00") in (
        table.last_filters
    )
    assert repository.exists(record.id) is False


def test_supabase_profile_repository() -> None:
    client = FakeSupabaseClient()
    table = client.table("user_profiles")
    table.queue("select", [{"payload": {"diabetes_mode": True}}])

    repository = SupabaseProfileRepository(client)
    repository.save_profile({"diabetes_mode": True})

    assert repository.load_profile() == {"diabetes_mode": True}
    assert table.last_payload["id"] == 1
    assert table.last_upsert_conflict == "id"


def test_supabase_failures_raise_storage_error() -> None:
    client = FakeSupabaseClient()
    client.table("scans").error = RuntimeError("connection reset")

    repository = SupabaseScanRepository(client)

    with pytest.raises(StorageError):
        repository.get_scan("111")


def test_corrupt_rows_raise_storage_error() -> None:
    client = FakeSupabaseClient()
    client.table("consumptions").queue(
        "select", [{"id": "x", "barcode": "111", "consumed_at": "not-a-date"}]
    )

    repository = SupabaseConsumptionRepository(client)

    with pytest.raises(StorageError):
        repository.list_all()


def test_supabase_scan_listing_reads_every_page() -> None:
    client = FakeSupabaseClient()
    scans_table = client.table("scans")
    scans = [make_scan(str(index)) for index in range(5)]
    scans_table.queue("select", [scan_to_row(scan) for scan in scans[:2]])
    scans_table.queue("select", [scan_to_row(scan) for scan in scans[2:4]])
    scans_table.queue("select", [scan_to_row(scans[4])])

    repository = SupabaseScanRepository(client, page_size=2)

    assert repository.list_scans() == scans
    assert scans_table.ranges == [(0, 1), (2, 3), (4, 5)]


def test_supabase_consumption_listing_stops_on_empty_page() -> None:
    client = FakeSupabaseClient()
    table = client.table("consumptions")
    records = [
        ConsumptionRecord(barcode="111", consumed_at=NOW, portion_grams=grams)
        for grams in (10, 20)
    ]
    table.queue("select", [consumption_to_row(record) for record in records])
    table.queue("select", [])

    repository = SupabaseConsumptionRepository(client, page_size=2)

    assert repository.list_all() == records
    assert table.ranges == [(0, 1), (2, 3)]
