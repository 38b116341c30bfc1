"""User filter profile.

Warnings are raised from the user's own settings; the profile carries no
recommendations of its own.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from good_steward.domain.scans import format_allergen

MIN_SUGAR_THRESHOLD = 1
MAX_SUGAR_THRESHOLD = 50


@dataclass(frozen=True)
class AllergenOption:
    """Allergen the settings screen offers for selection."""

    code: str
    name: str


ALLERGEN_OPTIONS = (
    AllergenOption("en:gluten", "Gluten"),
    AllergenOption("en:milk", "Milk/Dairy"),
    AllergenOption("en:eggs", "Eggs"),
    AllergenOption("en:peanuts", "Peanuts"),
    AllergenOption("en:nuts", "Tree Nuts"),
    AllergenOption("en:soybeans", "Soy"),
    AllergenOption("en:fish", "Fish"),
    AllergenOption("en:crustaceans", "Shellfish"),
    AllergenOption("en:sesame-seeds", "Sesame"),
    AllergenOption("en:celery", "Celery"),
    AllergenOption("en:mustard", "Mustard"),
    AllergenOption("en:sulphur-dioxide-and-sulphites", "Sulphites"),
    AllergenOption("en:lupin", "Lupin"),
    AllergenOption("en:molluscs", "Molluscs"),
)


class UserProfile(BaseModel):
    """Filter modes and thresholds chosen by the user."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    diabetes_mode: bool = False
    sugar_threshold: float = Field(
        default=10, ge=MIN_SUGAR_THRESHOLD, le=MAX_SUGAR_THRESHOLD
    )
    pregnancy_mode: bool = False
    allergy_mode: bool = False
    allergens: frozenset[str] = frozenset()
    show_traces: bool = True


def allergen_name(code: str) -> str:
    """Return the display name for an allergen code."""
    for option in ALLERGEN_OPTIONS:
        if option.code == code:
            return option.name
    return format_allergen(code)
