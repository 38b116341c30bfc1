"""Evaluate a product against the user's filter profile.

Every warning is attributed to a setting the user chose. Missing product data
never raises a warning: absence is not evidence of presence.
"""

from dataclasses import dataclass

from good_steward.domain.profile import UserProfile, allergen_name
from good_steward.domain.scans import ScanResult
from good_steward.domain.warnings import FilterMode, FilterWarning, WarningLevel

PREGNANCY_FILTER_THRESHOLD = "Your pregnancy filter is active"


@dataclass(frozen=True)
class _PregnancyRule:
    category: str
    level: WarningLevel
    keywords: tuple[str, ...]
    message: str | None = None


_PREGNANCY_RULES = (
    _PregnancyRule(
        "alcohol",
        WarningLevel.DANGER,
        ("alcohol", "wine", "beer", "spirits", "liquor", "vodka", "whiskey", "rum"),
    ),
    _PregnancyRule(
        "caffeine",
        WarningLevel.WARNING,
        ("caffeine", "coffee", "espresso", "guarana", "energy drink"),
    ),
    _PregnancyRule(
        "raw dairy",
        WarningLevel.DANGER,
        ("raw milk", "unpasteurized", "unpasteurised", "lait cru", "raw cheese"),
        message="May contain unpasteurized dairy",
    ),
)

# Label codes that appear among allergen or trace tags.
_PREGNANCY_LABEL_CODES = {
    "en:contains-alcohol": "alcohol",
    "en:not-recommended-for-pregnant-women": "alcohol",
    "en:contains-caffeine": "caffeine",
    "en:raw-milk": "raw dairy",
}


def check_product(profile: UserProfile, result: ScanResult) -> list[FilterWarning]:
    """Return warnings in a fixed order: sugar, pregnancy, allergy, traces."""
    warnings: list[FilterWarning] = []
    if profile.diabetes_mode:
        warnings.extend(_check_sugar(profile, result))
    if profile.pregnancy_mode:
        warnings.extend(_check_pregnancy(result))
    if profile.allergy_mode and profile.allergens:
        warnings.extend(_check_allergens(profile, result))
        if profile.show_traces:
            warnings.extend(_check_traces(profile, result))
    return warnings


def warning_count(profile: UserProfile, result: ScanResult) -> int:
    """Return how many warnings a product raises."""
    return len(check_product(profile, result))


def has_critical_warnings(profile: UserProfile, result: ScanResult) -> bool:
    """Return True when any warning is at danger level."""
    return any(
        warning.level == WarningLevel.DANGER
        for warning in check_product(profile, result)
    )


def _check_sugar(profile: UserProfile, result: ScanResult) -> list[FilterWarning]:
    sugar = result.nutrition.sugar_100g if result.nutrition else None
    if sugar is None or sugar <= profile.sugar_threshold:
        return []
    level = (
        WarningLevel.DANGER
        if sugar > profile.sugar_threshold * 2
        else WarningLevel.WARNING
    )
    sugar_text = _format_number(sugar)
    threshold_text = _format_number(profile.sugar_threshold)
    return [
        FilterWarning(
            level=level,
            mode=FilterMode.SUGAR,
            message=(
                f"Sugar content ({sugar_text}g) exceeds your threshold "
                f"({threshold_text}g)"
            ),
            fact=f"{sugar_text}g/100g",
            threshold=f"{threshold_text}g/100g",
        )
    ]


def _check_pregnancy(result: ScanResult) -> list[FilterWarning]:
    ingredients = (result.ingredients or "").lower()
    tagged = {
        _PREGNANCY_LABEL_CODES[code]: code
        for code in sorted(result.allergens | result.traces)
        if code in _PREGNANCY_LABEL_CODES
    }
    warnings: list[FilterWarning] = []
    for rule in _PREGNANCY_RULES:
        found = next(
            (keyword for keyword in rule.keywords if keyword in ingredients), None
        )
        if found is not None:
            fact = f'Contains "{found}"'
            default_message = f'Ingredient list includes "{found}"'
        elif rule.category in tagged:
            fact = f"Labelled {tagged[rule.category]}"
            default_message = f"Product is labelled {tagged[rule.category]}"
        else:
            continue
        warnings.append(
            FilterWarning(
                level=rule.level,
                mode=FilterMode.PREGNANCY,
                message=rule.message or default_message,
                fact=fact,
                threshold=PREGNANCY_FILTER_THRESHOLD,
            )
        )
    return warnings


def _check_allergens(profile: UserProfile, result: ScanResult) -> list[FilterWarning]:
    warnings = []
    for code in sorted(profile.allergens):
        if code not in result.allergens:
            continue
        name = allergen_name(code)
        warnings.append(
            FilterWarning(
                level=WarningLevel.DANGER,
                mode=FilterMode.ALLERGY,
                message=f"CONTAINS: {name.upper()}",
                fact=f"Contains {name}",
                threshold=f"{name} is in your allergen list",
            )
        )
    return warnings


def _check_traces(profile: UserProfile, result: ScanResult) -> list[FilterWarning]:
    warnings = []
    for code in sorted(profile.allergens):
        if code not in result.traces:
            continue
        name = allergen_name(code)
        warnings.append(
            FilterWarning(
                level=WarningLevel.INFO,
                mode=FilterMode.TRACE,
                message=f"May contain traces of: {name}",
                fact=f"May contain traces of {name}",
                threshold=f"{name} is in your allergen list",
            )
        )
    return warnings


def _format_number(value: float) -> str:
    return f"{value:g}"
