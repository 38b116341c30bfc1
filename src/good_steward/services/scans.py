"""Scan cache: the product store behind barcode lookups."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, tzinfo
from typing import Protocol

from good_steward.domain.nutrition import NutritionData, scale_portion
from good_steward.domain.scans import ConsumptionRecord, HistoryFilter, ScanResult
from good_steward.errors import ValidationError
from good_steward.services.cache import Cache, InMemoryCache
from good_steward.services.ledger import ConsumptionLedger
from good_steward.services.locks import KeyedLocks

_logger = logging.getLogger(__name__)


class ScanRepository(Protocol):
    """Persistence interface for product facts.

    Stored scans carry no consumptions; those live in the ledger.
    """

    def get_scan(self, barcode: str) -> ScanResult | None:
        """Return the stored scan for a barcode, if present."""

    def upsert_scan(self, scan: ScanResult) -> None:
        """Insert or replace the product facts for a barcode."""

    def list_scans(self) -> list[ScanResult]:
        """Return every scan, most recently scanned first."""

    def delete_scan(self, barcode: str) -> None:
        """Delete a scan if present."""

    def clear(self) -> None:
        """Delete every scan."""

    def count(self) -> int:
        """Return the number of stored scans."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ScanCacheService:
    """Get, save and edit cached scans and log what was eaten.

    Writes for one barcode are serialized, so a save racing with a
    consumption or a nutrition edit keeps both effects.
    """

    repository: ScanRepository
    ledger: ConsumptionLedger
    timezone: tzinfo
    cache: Cache = field(default_factory=InMemoryCache)
    cache_ttl_seconds: int = 300
    locks: KeyedLocks = field(default_factory=KeyedLocks)
    clock: Callable[[], datetime] = _utcnow
    _reset_guard: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _generation: int = field(default=0, init=False, repr=False)

    def get(self, barcode: str) -> ScanResult | None:
        """Return the scan with its consumptions, or None on a miss."""
        cached = self.cache.get(barcode)
        if isinstance(cached, ScanResult):
            return cached
        with self.locks.hold(barcode):
            return self._load(barcode)

    def save(self, result: ScanResult) -> ScanResult | None:
        """Upsert product facts without losing logged consumptions.

        Imported consumptions are validated before anything is written.
        """
        for record in result.consumptions:
            self.ledger.validate(record)
        with self.locks.hold(result.barcode):
            existing = self.repository.get_scan(result.barcode)
            self.repository.upsert_scan(replace(result, consumptions=()))
            imported = self.ledger.append_missing(list(result.consumptions))
            stored = self._load(result.barcode)
        _logger.info(
            "Saved scan: barcode=%s name=%s updated=%s imported_consumptions=%s",
            result.barcode,
            result.name,
            existing is not None,
            imported,
        )
        return stored

    def update_nutrition(
        self, barcode: str, changes: dict[str, object]
    ) -> ScanResult | None:
        """Merge nutrition fields into a stored scan and mark them user-edited.

        Returns None without writing when the barcode is unknown.
        """
        with self.locks.hold(barcode):
            scan = self.repository.get_scan(barcode)
            if scan is None:
                _logger.warning(
                    "Cannot update nutrition, scan not found: barcode=%s", barcode
                )
                return None
            base = scan.nutrition or NutritionData()
            merged = base.merge({**changes, "is_user_edited": True})
            self.repository.upsert_scan(replace(scan, nutrition=merged))
            stored = self._load(barcode)
        _logger.info(
            "Updated nutrition: barcode=%s fields=%s", barcode, sorted(changes)
        )
        return stored

    def add_consumption(
        self,
        barcode: str,
        portion_grams: float,
        consumed_at: datetime | None = None,
    ) -> ConsumptionRecord | None:
        """Log a portion, snapshotting nutrition from the current stored values.

        Returns None without writing when the barcode is unknown.
        """
        if portion_grams <= 0:
            raise ValidationError(f"Portion must be positive, got {portion_grams}g")
        with self.locks.hold(barcode):
            scan = self.repository.get_scan(barcode)
            if scan is None:
                _logger.warning(
                    "Cannot add consumption, scan not found: barcode=%s", barcode
                )
                return None
            record = ConsumptionRecord(
                barcode=barcode,
                consumed_at=consumed_at or self.clock(),
                portion_grams=float(portion_grams),
                portion_nutrition=scale_portion(scan.nutrition, portion_grams),
            )
            self.ledger.append(record)
            self._load(barcode)
        return record

    def delete_scan(self, barcode: str) -> None:
        """Remove product facts. Ledger entries stay for the statistics."""
        with self.locks.hold(barcode):
            self.repository.delete_scan(barcode)
            self.cache.delete(barcode)

    def clear_history(self) -> None:
        """Full reset: remove every scan and every ledger entry.

        Loads that started before the reset finished do not refill the cache.
        """
        self.repository.clear()
        self.ledger.clear()
        with self._reset_guard:
            self._generation += 1
            self.cache.clear()
        _logger.warning("Scan history cleared")

    def count(self) -> int:
        """Return the number of cached scans."""
        return self.repository.count()

    def get_history(self) -> list[ScanResult]:
        """Return every scan with consumptions, most recent scan first."""
        by_barcode: dict[str, list[ConsumptionRecord]] = {}
        for record in self.ledger.list_all():
            by_barcode.setdefault(record.barcode, []).append(record)
        return [
            replace(scan, consumptions=tuple(by_barcode.get(scan.barcode, ())))
            for scan in self.repository.list_scans()
        ]

    def get_history_filtered(self, mode: HistoryFilter | str) -> list[ScanResult]:
        """Return all, ever-consumed or consumed-today scans."""
        try:
            history_filter = HistoryFilter(mode)
        except ValueError as exc:
            raise ValidationError(f"Unknown history filter: {mode}") from exc
        history = self.get_history()
        if history_filter == HistoryFilter.CONSUMED:
            return [scan for scan in history if scan.consumed]
        if history_filter == HistoryFilter.TODAY:
            return self.get_consumed_for_date(self._today(), history)
        return history

    def get_consumed_for_date(
        self, day: date, history: list[ScanResult] | None = None
    ) -> list[ScanResult]:
        """Return scans with at least one record on a local calendar day."""
        scans = self.get_history() if history is None else history
        return [scan for scan in scans if scan.was_consumed_on(day, self.timezone)]

    def _today(self) -> date:
        return self.clock().astimezone(self.timezone).date()

    def _load(self, barcode: str) -> ScanResult | None:
        """Read a scan with its ledger entries and refresh the cache."""
        generation = self._generation
        scan = self.repository.get_scan(barcode)
        if scan is None:
            self.cache.delete(barcode)
            return None
        records = self.ledger.list_for_barcode(barcode)
        loaded = replace(scan, consumptions=tuple(records))
        with self._reset_guard:
            if generation == self._generation:
                self.cache.set(barcode, loaded, ttl_seconds=self.cache_ttl_seconds)
        return loaded
