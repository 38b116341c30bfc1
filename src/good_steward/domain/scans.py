"""Domain models for cached scans and their consumption records."""

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, tzinfo
from enum import StrEnum
from uuid import uuid4

from good_steward.domain.nutrition import NutritionData, PortionNutrition

PHOTO_ID_PREFIX = "photo_"

_NOVA_LABELS = {
    1: "1 - Unprocessed",
    2: "2 - Processed ingredients",
    3: "3 - Processed foods",
    4: "4 - Ultra-processed",
}


class CaptureSource(StrEnum):
    """How a scan entered the store."""

    BARCODE = "barcode"
    PHOTO = "photo"
    SEARCH = "search"


class HistoryFilter(StrEnum):
    """History views offered to the UI."""

    ALL = "all"
    CONSUMED = "consumed"
    TODAY = "today"


@dataclass(frozen=True)
class ConsumptionRecord:
    """A logged portion of a scanned product.

    ``portion_nutrition`` is computed once when the record is written and is
    never recomputed from later nutrition edits.
    """

    barcode: str
    consumed_at: datetime
    portion_grams: float
    portion_nutrition: PortionNutrition = field(default_factory=PortionNutrition)
    id: str = field(default_factory=lambda: uuid4().hex)

    def local_day(self, tz: tzinfo) -> date:
        """Return the calendar day of consumption in the given timezone."""
        return self.consumed_at.astimezone(tz).date()


@dataclass(frozen=True)
class ScanResult:
    """A cached product record keyed by barcode or synthesized photo id."""

    barcode: str
    name: str
    ingredients: str = ""
    summary: str = ""
    brand: str | None = None
    nutrition: NutritionData | None = None
    allergens: frozenset[str] = frozenset()
    traces: frozenset[str] = frozenset()
    data_source: str | None = None
    source: CaptureSource = CaptureSource.BARCODE
    photo_uri: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    consumptions: tuple[ConsumptionRecord, ...] = ()

    @property
    def consumed(self) -> bool:
        """True once at least one portion has been logged."""
        return bool(self.consumptions)

    @property
    def is_photo_scan(self) -> bool:
        """True for entries created from a photo rather than a barcode."""
        return (
            self.barcode.startswith(PHOTO_ID_PREFIX)
            or self.source == CaptureSource.PHOTO
        )

    def consumptions_on(self, day: date, tz: tzinfo) -> list[ConsumptionRecord]:
        """Return records logged on a local calendar day."""
        return [record for record in self.consumptions if record.local_day(tz) == day]

    def was_consumed_on(self, day: date, tz: tzinfo) -> bool:
        """Return True when any record falls on the local calendar day."""
        return any(record.local_day(tz) == day for record in self.consumptions)

    def total_consumed(self) -> PortionNutrition:
        """Sum every logged portion of this product."""
        total = PortionNutrition()
        for record in self.consumptions:
            total = total + record.portion_nutrition
        return total


def create_photo_id(now: datetime | None = None) -> str:
    """Create a unique key for a photo-based scan."""
    moment = now or datetime.now(tz=UTC)
    return f"{PHOTO_ID_PREFIX}{int(moment.timestamp() * 1000)}"


def format_nutriscore(grade: str | None) -> str:
    """Format a Nutri-Score grade for display."""
    if not grade:
        return "N/A"
    return grade.upper()


def format_nova(nova: int | None) -> str:
    """Format a NOVA processing group for display."""
    if not nova:
        return "N/A"
    return _NOVA_LABELS.get(nova, str(nova))


def format_allergen(code: str) -> str:
    """Turn an allergen code like ``en:tree-nuts`` into ``Tree Nuts``."""
    cleaned = re.sub(r"^en:", "", code).replace("-", " ")
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), cleaned)
