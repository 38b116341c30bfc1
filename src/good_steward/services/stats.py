"""Statistics over the consumption ledger."""

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo

from good_steward.domain.nutrition import round_half_up
from good_steward.domain.scans import ConsumptionRecord
from good_steward.domain.stats import DailyTotals, PeriodComparison, PeriodStats
from good_steward.errors import ValidationError
from good_steward.services.ledger import ConsumptionLedger


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _DayAccumulator:
    calories: float = 0.0
    sugar: float = 0.0
    salt: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    items: int = 0

    def add(self, record: ConsumptionRecord) -> None:
        snapshot = record.portion_nutrition
        self.calories += snapshot.calories or 0
        self.sugar += snapshot.sugar or 0
        self.salt += snapshot.salt or 0
        self.protein += snapshot.protein or 0
        self.carbs += snapshot.carbs or 0
        self.items += 1


@dataclass
class StatsService:
    """Daily totals and rolling-period averages in the user's timezone."""

    ledger: ConsumptionLedger
    timezone: tzinfo
    clock: Callable[[], datetime] = _utcnow

    def today(self) -> date:
        """Return the current local calendar day."""
        return self.clock().astimezone(self.timezone).date()

    def get_daily_totals(self, day: date | None = None) -> DailyTotals:
        """Sum the snapshots of every record logged on a local day."""
        target = day or self.today()
        total = _DayAccumulator()
        for record in self._records_between(target, target):
            if record.local_day(self.timezone) == target:
                total.add(record)
        return DailyTotals(
            day=target,
            calories=round_half_up(total.calories),
            sugar=round_half_up(total.sugar, 1),
            salt=round_half_up(total.salt, 1),
            protein=round_half_up(total.protein, 1),
            carbs=round_half_up(total.carbs, 1),
            item_count=total.items,
        )

    def get_period_stats(self, days: int, offset_days: int = 0) -> PeriodStats:
        """Average intake per tracked day over an inclusive window.

        The window ends ``offset_days`` before today and spans ``days`` local
        calendar days. Days without records do not count towards averages.
        """
        if days < 1:
            raise ValidationError(f"Period must cover at least one day, got {days}")
        if offset_days < 0:
            raise ValidationError(f"Offset cannot be negative, got {offset_days}")
        end_day = self.today() - timedelta(days=offset_days)
        start_day = end_day - timedelta(days=days - 1)

        daily: dict[date, _DayAccumulator] = {}
        for record in self._records_between(start_day, end_day):
            record_day = record.local_day(self.timezone)
            if record_day < start_day or record_day > end_day:
                continue
            daily.setdefault(record_day, _DayAccumulator()).add(record)

        days_tracked = len(daily)
        if days_tracked == 0:
            return PeriodStats(
                start_day=start_day,
                end_day=end_day,
                avg_calories=0,
                avg_sugar=0,
                avg_protein=0,
                avg_carbs=0,
                days_tracked=0,
                total_items=0,
            )
        return PeriodStats(
            start_day=start_day,
            end_day=end_day,
            avg_calories=round_half_up(
                sum(day.calories for day in daily.values()) / days_tracked
            ),
            avg_sugar=round_half_up(
                sum(day.sugar for day in daily.values()) / days_tracked, 1
            ),
            avg_protein=round_half_up(
                sum(day.protein for day in daily.values()) / days_tracked, 1
            ),
            avg_carbs=round_half_up(
                sum(day.carbs for day in daily.values()) / days_tracked, 1
            ),
            days_tracked=days_tracked,
            total_items=sum(day.items for day in daily.values()),
        )

    def compare_periods(self, days: int) -> PeriodComparison:
        """Compare the last ``days`` days with the equally long window before."""
        current = self.get_period_stats(days)
        prior = self.get_period_stats(days, offset_days=days)
        return PeriodComparison(
            days=days,
            current=current,
            prior=prior,
            calories_trend=compute_trend(current.avg_calories, prior.avg_calories),
            sugar_trend=compute_trend(current.avg_sugar, prior.avg_sugar),
            protein_trend=compute_trend(current.avg_protein, prior.avg_protein),
            carbs_trend=compute_trend(current.avg_carbs, prior.avg_carbs),
        )

    def _records_between(
        self, start_day: date, end_day: date
    ) -> list[ConsumptionRecord]:
        start = datetime.combine(start_day, time.min, tzinfo=self.timezone)
        end = datetime.combine(
            end_day + timedelta(days=1), time.min, tzinfo=self.timezone
        )
        return self.ledger.list_between(start.astimezone(UTC), end.astimezone(UTC))


def compute_trend(current: float, prior: float) -> int | None:
    """Return the whole-percent change from ``prior``, or None when prior is 0."""
    if prior == 0:
        return None
    return math.floor(((current - prior) / prior) * 100 + 0.5)


def describe_trend(trend: int | None) -> str:
    """Render a trend for display; unknown or zero change reads as stable."""
    if trend is None or trend == 0:
        return "stable"
    if trend > 0:
        return f"up {trend}%"
    return f"down {abs(trend)}%"
