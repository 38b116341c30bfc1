"""Pydantic models for the HTTP payloads."""

from dataclasses import replace
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from good_steward.domain.nutrition import NutritionData, PortionNutrition
from good_steward.domain.scans import CaptureSource, ConsumptionRecord, ScanResult
from good_steward.domain.stats import DailyTotals, PeriodComparison, PeriodStats
from good_steward.domain.warnings import FilterWarning
from good_steward.services.stats import describe_trend


class NutritionPayload(BaseModel):
    """Per-100g nutrition fields; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    calories_100g: float | None = None
    sugar_100g: float | None = None
    salt_100g: float | None = None
    fat_100g: float | None = None
    saturated_fat_100g: float | None = None
    carbs_100g: float | None = None
    protein_100g: float | None = None
    fiber_100g: float | None = None
    serving_size_g: float | None = None
    nutriscore: str | None = None
    nova: int | None = None
    is_user_edited: bool = False

    @classmethod
    def from_domain(cls, nutrition: NutritionData) -> "NutritionPayload":
        return cls(**nutrition.to_dict())


class PortionPayload(BaseModel):
    """Nutrition snapshot of one portion."""

    calories: float | None = None
    sugar: float | None = None
    salt: float | None = None
    protein: float | None = None
    carbs: float | None = None
    saturated_fat: float | None = None

    @classmethod
    def from_domain(cls, portion: PortionNutrition) -> "PortionPayload":
        return cls(**portion.to_dict())


class ConsumptionPayload(BaseModel):
    """A logged portion as exchanged with the UI."""

    id: str | None = None
    barcode: str | None = None
    consumed_at: datetime
    portion_grams: float = Field(gt=0)
    portion_nutrition: PortionPayload = Field(default_factory=PortionPayload)

    @classmethod
    def from_domain(cls, record: ConsumptionRecord) -> "ConsumptionPayload":
        return cls(
            id=record.id,
            barcode=record.barcode,
            consumed_at=record.consumed_at,
            portion_grams=record.portion_grams,
            portion_nutrition=PortionPayload.from_domain(record.portion_nutrition),
        )

    def to_domain(self, barcode: str) -> ConsumptionRecord:
        record = ConsumptionRecord(
            barcode=barcode,
            consumed_at=self.consumed_at,
            portion_grams=self.portion_grams,
            portion_nutrition=PortionNutrition(**self.portion_nutrition.model_dump()),
        )
        return replace(record, id=self.id) if self.id else record


class ScanPayload(BaseModel):
    """Body of ``PUT /scans/{barcode}``."""

    name: str
    brand: str | None = None
    ingredients: str = ""
    summary: str = ""
    nutrition: NutritionPayload | None = None
    allergens: list[str] = Field(default_factory=list)
    traces: list[str] = Field(default_factory=list)
    data_source: str | None = None
    source: CaptureSource = CaptureSource.BARCODE
    photo_uri: str | None = None
    timestamp: datetime | None = None
    consumptions: list[ConsumptionPayload] = Field(default_factory=list)

    def to_domain(self, barcode: str) -> ScanResult:
        nutrition = (
            NutritionData.from_dict(self.nutrition.model_dump())
            if self.nutrition
            else None
        )
        result = ScanResult(
            barcode=barcode,
            name=self.name,
            brand=self.brand,
            ingredients=self.ingredients,
            summary=self.summary,
            nutrition=nutrition,
            allergens=frozenset(self.allergens),
            traces=frozenset(self.traces),
            data_source=self.data_source,
            source=self.source,
            photo_uri=self.photo_uri,
            consumptions=tuple(
                consumption.to_domain(barcode) for consumption in self.consumptions
            ),
        )
        if self.timestamp is None:
            return result
        return replace(result, timestamp=self.timestamp)


class ScanResponse(BaseModel):
    """A cached scan with its consumption history."""

    barcode: str
    name: str
    brand: str | None
    ingredients: str
    summary: str
    nutrition: NutritionPayload | None
    allergens: list[str]
    traces: list[str]
    data_source: str | None
    source: CaptureSource
    photo_uri: str | None
    timestamp: datetime
    consumed: bool
    is_photo_scan: bool
    consumptions: list[ConsumptionPayload]

    @classmethod
    def from_domain(cls, scan: ScanResult) -> "ScanResponse":
        return cls(
            barcode=scan.barcode,
            name=scan.name,
            brand=scan.brand,
            ingredients=scan.ingredients,
            summary=scan.summary,
            nutrition=(
                NutritionPayload.from_domain(scan.nutrition) if scan.nutrition else None
            ),
            allergens=sorted(scan.allergens),
            traces=sorted(scan.traces),
            data_source=scan.data_source,
            source=scan.source,
            photo_uri=scan.photo_uri,
            timestamp=scan.timestamp,
            consumed=scan.consumed,
            is_photo_scan=scan.is_photo_scan,
            consumptions=[
                ConsumptionPayload.from_domain(record) for record in scan.consumptions
            ],
        )


class ConsumptionRequest(BaseModel):
    """Body of ``POST /scans/{barcode}/consumptions``."""

    portion_grams: float
    consumed_at: datetime | None = None


class LabelRequest(BaseModel):
    """OCR'd label text to parse into nutrition fields."""

    text: str


class LabelResponse(BaseModel):
    """Outcome of applying a parsed label."""

    parsed: dict[str, float | bool]
    confidence: int
    useful: bool
    scan: ScanResponse | None


class WarningResponse(BaseModel):
    level: str
    mode: str
    message: str
    fact: str
    threshold: str

    @classmethod
    def from_domain(cls, warning: FilterWarning) -> "WarningResponse":
        return cls(
            level=warning.level.value,
            mode=warning.mode.value,
            message=warning.message,
            fact=warning.fact,
            threshold=warning.threshold,
        )


class WarningsResponse(BaseModel):
    barcode: str
    count: int
    critical: bool
    warnings: list[WarningResponse]


class DailyTotalsResponse(BaseModel):
    day: date
    calories: float
    sugar: float
    salt: float
    protein: float
    carbs: float
    item_count: int

    @classmethod
    def from_domain(cls, totals: DailyTotals) -> "DailyTotalsResponse":
        return cls(
            day=totals.day,
            calories=totals.calories,
            sugar=totals.sugar,
            salt=totals.salt,
            protein=totals.protein,
            carbs=totals.carbs,
            item_count=totals.item_count,
        )


class PeriodStatsResponse(BaseModel):
    start_day: date
    end_day: date
    avg_calories: float
    avg_sugar: float
    avg_protein: float
    avg_carbs: float
    days_tracked: int
    total_items: int
    has_data: bool

    @classmethod
    def from_domain(cls, stats: PeriodStats) -> "PeriodStatsResponse":
        return cls(
            start_day=stats.start_day,
            end_day=stats.end_day,
            avg_calories=stats.avg_calories,
            avg_sugar=stats.avg_sugar,
            avg_protein=stats.avg_protein,
            avg_carbs=stats.avg_carbs,
            days_tracked=stats.days_tracked,
            total_items=stats.total_items,
            has_data=stats.has_data,
        )


class TrendValue(BaseModel):
    percent: int | None
    label: str


class TrendResponse(BaseModel):
    days: int
    current: PeriodStatsResponse
    prior: PeriodStatsResponse
    calories: TrendValue
    sugar: TrendValue
    protein: TrendValue
    carbs: TrendValue

    @classmethod
    def from_domain(cls, comparison: PeriodComparison) -> "TrendResponse":
        def _trend(value: int | None) -> TrendValue:
            return TrendValue(percent=value, label=describe_trend(value))

        return cls(
            days=comparison.days,
            current=PeriodStatsResponse.from_domain(comparison.current),
            prior=PeriodStatsResponse.from_domain(comparison.prior),
            calories=_trend(comparison.calories_trend),
            sugar=_trend(comparison.sugar_trend),
            protein=_trend(comparison.protein_trend),
            carbs=_trend(comparison.carbs_trend),
        )


class ProfilePatch(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    diabetes_mode: bool | None = None
    sugar_threshold: float | None = None
    pregnancy_mode: bool | None = None
    allergy_mode: bool | None = None
    allergens: list[str] | None = None
    show_traces: bool | None = None
