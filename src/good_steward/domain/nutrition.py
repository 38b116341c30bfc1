"""Nutrition domain models.

All ``NutritionData`` values are per 100 g. A field set to ``None`` means the
value is unknown; it is never treated as zero.
"""

import math
from dataclasses import asdict, dataclass, fields, replace

from good_steward.errors import ValidationError

_GRAM_FIELDS = ("sugar", "salt", "protein", "carbs", "saturated_fat")


@dataclass(frozen=True)
class NutritionData:
    """Per-100g nutrition facts for a product."""

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

    def merge(self, changes: dict[str, object]) -> "NutritionData":
        """Return a copy with the given fields replaced, others kept."""
        unknown = set(changes) - nutrition_field_names()
        if unknown:
            raise ValidationError(
                f"Unknown nutrition fields: {', '.join(sorted(unknown))}"
            )
        coerced = {name: _coerce_change(name, value) for name, value in changes.items()}
        return replace(self, **coerced)

    def to_dict(self) -> dict[str, object]:
        """Serialize known fields, dropping unknown values."""
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, payload: dict[str, object] | None) -> "NutritionData | None":
        """Build from a stored mapping; unrecognised keys are ignored."""
        if payload is None:
            return None
        known = nutrition_field_names()
        values = {key: value for key, value in payload.items() if key in known}
        values["is_user_edited"] = bool(values.get("is_user_edited", False))
        return cls(**values)


@dataclass(frozen=True)
class PortionNutrition:
    """Nutrition attributable to one eaten portion, frozen at log time."""

    calories: float | None = None
    sugar: float | None = None
    salt: float | None = None
    protein: float | None = None
    carbs: float | None = None
    saturated_fat: float | None = None

    def to_dict(self) -> dict[str, float]:
        """Serialize present values only."""
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, payload: dict[str, object] | None) -> "PortionNutrition":
        """Build from a stored snapshot mapping."""
        if not payload:
            return cls()
        known = {field.name for field in fields(cls)}
        return cls(
            **{
                key: float(value)
                for key, value in payload.items()
                if key in known and isinstance(value, int | float)
            }
        )

    def __add__(self, other: "PortionNutrition") -> "PortionNutrition":
        calories = (self.calories or 0) + (other.calories or 0)
        sums = {
            name: round_half_up(
                (getattr(self, name) or 0) + (getattr(other, name) or 0), 1
            )
            for name in _GRAM_FIELDS
        }
        return PortionNutrition(calories=calories, **sums)


def nutrition_field_names() -> set[str]:
    """Return the names of all NutritionData fields."""
    return {field.name for field in fields(NutritionData)}


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves upwards, the way display values are rounded."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def scale_portion(
    nutrition: NutritionData | None, portion_grams: float
) -> PortionNutrition:
    """Scale per-100g values to a portion.

    Calories round to whole numbers and gram values to one decimal. Missing
    or zero source values stay absent in the snapshot.
    """
    if nutrition is None:
        return PortionNutrition()
    factor = portion_grams / 100.0

    def _scaled(value: float | None, digits: int) -> float | None:
        if not value:
            return None
        return round_half_up(value * factor, digits)

    return PortionNutrition(
        calories=_scaled(nutrition.calories_100g, 0),
        sugar=_scaled(nutrition.sugar_100g, 1),
        salt=_scaled(nutrition.salt_100g, 1),
        protein=_scaled(nutrition.protein_100g, 1),
        carbs=_scaled(nutrition.carbs_100g, 1),
        saturated_fat=_scaled(nutrition.saturated_fat_100g, 1),
    )


def _coerce_change(name: str, value: object) -> object:
    """Check an edited value against its field type, converting numbers."""
    if name == "is_user_edited":
        if not isinstance(value, bool):
            raise ValidationError("is_user_edited must be true or false")
        return value
    if value is None:
        return None
    if name == "nutriscore":
        if not isinstance(value, str):
            raise ValidationError("nutriscore must be a grade letter")
        return value
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be finite")
    if name == "nova":
        if not number.is_integer():
            raise ValidationError(f"nova must be a whole number, got {value!r}")
        return int(number)
    return number
