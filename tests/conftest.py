"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from datetime import timezone as fixed_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from good_steward.config import Settings
from good_steward.containers import AppContainer, assemble_container
from good_steward.domain.nutrition import NutritionData
from good_steward.domain.scans import ConsumptionRecord, ScanResult
from good_steward.errors import StorageError
from good_steward.services.ledger import ConsumptionLedger, ConsumptionRepository
from good_steward.services.profile import ProfileRepository, ProfileService
from good_steward.services.scans import ScanCacheService, ScanRepository
from good_steward.services.stats import StatsService

# Fixed "now" used across tests: 2024-03-15 12:00 UTC.
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)
TZ = fixed_timezone(timedelta(hours=2))


@dataclass
class InMemoryScanRepository(ScanRepository):
    """In-memory scan repository for tests."""

    scans: dict[str, ScanResult] = field(default_factory=dict)
    fail: bool = False

    def get_scan(self, barcode: str) -> ScanResult | None:
        self._check()
        return self.scans.get(barcode)

    def upsert_scan(self, scan: ScanResult) -> None:
        self._check()
        self.scans[scan.barcode] = replace(scan, consumptions=())

    def list_scans(self) -> list[ScanResult]:
        self._check()
        return sorted(
            self.scans.values(), key=lambda scan: scan.timestamp, reverse=True
        )

    def delete_scan(self, barcode: str) -> None:
        self._check()
        self.scans.pop(barcode, None)

    def clear(self) -> None:
        self._check()
        self.scans.clear()

    def count(self) -> int:
        self._check()
        return len(self.scans)

    def _check(self) -> None:
        if self.fail:
            raise StorageError("disk unavailable")


@dataclass
class InMemoryConsumptionRepository(ConsumptionRepository):
    """In-memory ledger repository for tests."""

    records: list[ConsumptionRecord] = field(default_factory=list)

    def append(self, record: ConsumptionRecord) -> None:
        self.records.append(record)

    def exists(self, record_id: str) -> bool:
        return any(record.id == record_id for record in self.records)

    def list_for_barcode(self, barcode: str) -> list[ConsumptionRecord]:
        return sorted(
            (record for record in self.records if record.barcode == barcode),
            key=lambda record: record.consumed_at,
            reverse=True,
        )

    def list_between(self, start: datetime, end: datetime) -> list[ConsumptionRecord]:
        return sorted(
            (
                record
                for record in self.records
                if start <= record.consumed_at < end
            ),
            key=lambda record: record.consumed_at,
        )

    def list_all(self) -> list[ConsumptionRecord]:
        return sorted(
            self.records, key=lambda record: record.consumed_at, reverse=True
        )

    def clear(self) -> None:
        self.records.clear()


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    payload: dict[str, object] | None = None
    saves: int = 0

    def load_profile(self) -> dict[str, object] | None:
        return dict(self.payload) if self.payload is not None else None

    def save_profile(self, payload: dict[str, object]) -> None:
        self.payload = dict(payload)
        self.saves += 1

    def delete_profile(self) -> None:
        self.payload = None


@dataclass
class FakeClock:
    """Settable clock for services."""

    now: datetime = NOW

    def __call__(self) -> datetime:
        return self.now


def make_scan(barcode: str = "5000112637922", **overrides: object) -> ScanResult:
    values: dict[str, object] = {
        "barcode": barcode,
        "name": "Cola",
        "brand": "Fizz Co",
        "ingredients": "carbonated water, sugar, caffeine",
        "nutrition": NutritionData(
            calories_100g=42,
            sugar_100g=10.6,
            salt_100g=0.1,
            protein_100g=0,
            carbs_100g=10.6,
        ),
        "timestamp": NOW,
    }
    values.update(overrides)
    return ScanResult(**values)  # type: ignore[arg-type]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        storage_backend="sqlite",
        sqlite_path=tmp_path / "good_steward.db",
        admin_token="admin-token",
        timezone="UTC",
    )


@pytest.fixture
def new_york() -> ZoneInfo:
    try:
        return ZoneInfo("America/New_York")
    except ZoneInfoNotFoundError:
        pytest.skip("IANA timezone data is not installed")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scan_repository() -> InMemoryScanRepository:
    return InMemoryScanRepository()


@pytest.fixture
def consumption_repository() -> InMemoryConsumptionRepository:
    return InMemoryConsumptionRepository()


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def ledger(consumption_repository: InMemoryConsumptionRepository) -> ConsumptionLedger:
    return ConsumptionLedger(consumption_repository)


@pytest.fixture
def scan_service(
    scan_repository: InMemoryScanRepository,
    ledger: ConsumptionLedger,
    clock: FakeClock,
) -> ScanCacheService:
    return ScanCacheService(
        repository=scan_repository, ledger=ledger, timezone=TZ, clock=clock
    )


@pytest.fixture
def stats_service(ledger: ConsumptionLedger, clock: FakeClock) -> StatsService:
    return StatsService(ledger=ledger, timezone=TZ, clock=clock)


@pytest.fixture
def profile_service(profile_repository: InMemoryProfileRepository) -> ProfileService:
    return ProfileService(profile_repository)


@pytest.fixture
def container(
    settings: Settings,
    scan_repository: InMemoryScanRepository,
    consumption_repository: InMemoryConsumptionRepository,
    profile_repository: InMemoryProfileRepository,
    clock: FakeClock,
) -> AppContainer:
    app_container = assemble_container(
        settings,
        scan_repository=scan_repository,
        consumption_repository=consumption_repository,
        profile_repository=profile_repository,
    )
    app_container.scan_service.clock = clock
    app_container.stats_service.clock = clock
    return app_container
