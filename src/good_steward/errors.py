"""Error types raised by the data core."""


class GoodStewardError(Exception):
    """Base class for data core errors."""


class StorageError(GoodStewardError):
    """Persistence failed; the caller may retry the operation."""


class ValidationError(GoodStewardError):
    """Input was rejected before anything was written."""
