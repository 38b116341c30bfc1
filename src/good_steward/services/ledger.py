"""Append-only consumption ledger."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from good_steward.domain.scans import ConsumptionRecord
from good_steward.errors import ValidationError

_logger = logging.getLogger(__name__)


def _entry_key(record: ConsumptionRecord) -> tuple[datetime, float]:
    return record.consumed_at.astimezone(UTC), float(record.portion_grams)


class ConsumptionRepository(Protocol):
    """Persistence interface for consumption records."""

    def append(self, record: ConsumptionRecord) -> None:
        """Persist a new record."""

    def exists(self, record_id: str) -> bool:
        """Return True when a record with this id is stored."""

    def list_for_barcode(self, barcode: str) -> list[ConsumptionRecord]:
        """Return a product's records, most recent first."""

    def list_between(self, start: datetime, end: datetime) -> list[ConsumptionRecord]:
        """Return records with ``start <= consumed_at < end``, oldest first."""

    def list_all(self) -> list[ConsumptionRecord]:
        """Return every record, most recent first."""

    def clear(self) -> None:
        """Delete every record."""


@dataclass
class ConsumptionLedger:
    """Records what was eaten; entries are never edited once written."""

    repository: ConsumptionRepository

    def validate(self, record: ConsumptionRecord) -> None:
        """Raise ValidationError for a record the ledger would refuse."""
        if record.portion_grams <= 0:
            raise ValidationError(
                f"Portion must be positive, got {record.portion_grams}g"
            )
        if record.consumed_at.tzinfo is None:
            raise ValidationError("Consumption time must be timezone-aware")

    def append(self, record: ConsumptionRecord) -> ConsumptionRecord:
        """Validate and persist a record."""
        self.validate(record)
        self.repository.append(record)
        _logger.info(
            "Logged consumption: barcode=%s grams=%s",
            record.barcode,
            record.portion_grams,
        )
        return record

    def append_missing(self, records: list[ConsumptionRecord]) -> int:
        """Persist records not yet in the ledger and return how many were added.

        A record is already known when its id is stored, or when the product
        has an entry eaten at the same instant with the same portion. Every
        record is validated before anything is written.
        """
        for record in records:
            self.validate(record)
        known: dict[str, set[tuple[datetime, float]]] = {}
        added = 0
        for record in records:
            entries = known.get(record.barcode)
            if entries is None:
                entries = {
                    _entry_key(stored)
                    for stored in self.repository.list_for_barcode(record.barcode)
                }
                known[record.barcode] = entries
            if _entry_key(record) in entries or self.repository.exists(record.id):
                continue
            self.append(record)
            entries.add(_entry_key(record))
            added += 1
        return added

    def list_for_barcode(self, barcode: str) -> list[ConsumptionRecord]:
        """Return a product's records, most recent first."""
        return self.repository.list_for_barcode(barcode)

    def list_between(self, start: datetime, end: datetime) -> list[ConsumptionRecord]:
        """Return records in a half-open time range."""
        return self.repository.list_between(start, end)

    def list_all(self) -> list[ConsumptionRecord]:
        """Return every record, most recent first."""
        return self.repository.list_all()

    def clear(self) -> None:
        """Remove every record. Only used by a full reset."""
        self.repository.clear()
        _logger.warning("Consumption ledger cleared")
