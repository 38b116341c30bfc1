"""Domain models for statistics."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DailyTotals:
    """Nutrition eaten on one local calendar day."""

    day: date
    calories: float
    sugar: float
    salt: float
    protein: float
    carbs: float
    item_count: int


@dataclass(frozen=True)
class PeriodStats:
    """Per-tracked-day averages over an inclusive window of local days."""

    start_day: date
    end_day: date
    avg_calories: float
    avg_sugar: float
    avg_protein: float
    avg_carbs: float
    days_tracked: int
    total_items: int

    @property
    def has_data(self) -> bool:
        """False when nothing was logged in the window."""
        return self.days_tracked > 0


@dataclass(frozen=True)
class PeriodComparison:
    """Current window against the contiguous window before it.

    Trend values are whole percentages, or ``None`` when the prior average
    is zero.
    """

    days: int
    current: PeriodStats
    prior: PeriodStats
    calories_trend: int | None
    sugar_trend: int | None
    protein_trend: int | None
    carbs_trend: int | None
