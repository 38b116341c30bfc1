"""Parse nutrition values out of OCR'd label text.

The parsed mapping is a partial nutrition update meant for
``ScanCacheService.update_nutrition``. Values are read as printed; the label
is assumed to state them per 100 g.
"""

import re

_NUMBER = r"(\d+(?:\.\d+)?)"

_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "calories_100g": (
        re.compile(rf"calories[:\s*]*{_NUMBER}\s*(?:kcal|cal)?"),
        re.compile(rf"energy[:\s*]*{_NUMBER}\s*(?:kcal|cal)"),
        re.compile(rf"{_NUMBER}\s*(?:kcal|calories)"),
    ),
    "sugar_100g": (
        re.compile(rf"sugars?[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"sugars?[:\s*]*{_NUMBER}"),
    ),
    "protein_100g": (
        re.compile(rf"proteins?[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"proteins?[:\s*]*{_NUMBER}"),
    ),
    "carbs_100g": (
        re.compile(rf"carbohydrates?[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"total carbs?[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"carbs?[:\s*]*{_NUMBER}"),
    ),
    "saturated_fat_100g": (
        re.compile(rf"saturated fat[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"saturates?[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"sat\.?\s*fat[:\s*]*{_NUMBER}"),
    ),
    "fiber_100g": (
        re.compile(rf"fib(?:er|re)[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"dietary fiber[:\s*]*{_NUMBER}"),
    ),
    "serving_size_g": (
        re.compile(rf"serving size[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"portion[:\s*]*{_NUMBER}\s*g"),
        re.compile(rf"serving[:\s*]*{_NUMBER}\s*g"),
    ),
}
_SALT = re.compile(rf"salt[:\s*]*{_NUMBER}\s*g")
_SODIUM_MG = re.compile(rf"sodium[:\s*]*{_NUMBER}\s*mg")

CONFIDENCE_FIELDS = (
    "calories_100g",
    "sugar_100g",
    "protein_100g",
    "carbs_100g",
    "saturated_fat_100g",
    "salt_100g",
)


def parse_nutrition_label(text: str) -> dict[str, object]:
    """Extract per-100g nutrition fields from label text.

    Sodium given in milligrams is converted to salt in grams
    (salt = sodium * 2.5 / 1000). When anything is found the result is
    flagged ``is_user_edited``.
    """
    normalized = _normalize(text)
    result: dict[str, object] = {}
    for field_name, patterns in _PATTERNS.items():
        value = _first_match(normalized, patterns)
        if value is not None:
            result[field_name] = value

    salt = _first_match(normalized, (_SALT,))
    if salt is None:
        sodium_mg = _first_match(normalized, (_SODIUM_MG,))
        if sodium_mg is not None:
            salt = round(sodium_mg * 2.5 / 1000, 2)
    if salt is not None:
        result["salt_100g"] = salt

    if result:
        result["is_user_edited"] = True
    return result


def has_useful_nutrition(parsed: dict[str, object]) -> bool:
    """Return True when at least a positive calorie value was found."""
    calories = parsed.get("calories_100g")
    return isinstance(calories, int | float) and calories > 0


def calculate_confidence(parsed: dict[str, object]) -> int:
    """Score 0-100 by how many core fields were extracted."""
    found = sum(1 for name in CONFIDENCE_FIELDS if parsed.get(name) is not None)
    return round(found / len(CONFIDENCE_FIELDS) * 100)


def _normalize(text: str) -> str:
    collapsed = re.sub(r"\s+", " ", text)
    # OCR often reads 0 as O and 1 as l or I directly before a unit.
    collapsed = re.sub(r"(?<=\d)[oO]g", "0g", collapsed)
    collapsed = re.sub(r"(?<=\d)[lI]g", "1g", collapsed)
    return collapsed.lower()


def _first_match(text: str, patterns: tuple[re.Pattern[str], ...]) -> float | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None
