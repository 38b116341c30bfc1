"""Models for filter warnings."""

from dataclasses import dataclass
from enum import StrEnum


class WarningLevel(StrEnum):
    """Severity of a warning."""

    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"


class FilterMode(StrEnum):
    """Which profile filter produced a warning."""

    SUGAR = "sugar"
    PREGNANCY = "pregnancy"
    ALLERGY = "allergy"
    TRACE = "trace"


@dataclass(frozen=True)
class FilterWarning:
    """A flag raised because product facts matched a user filter.

    ``fact`` is what was found on the product and ``threshold`` is what the
    user configured.
    """

    level: WarningLevel
    mode: FilterMode
    message: str
    fact: str
    threshold: str
