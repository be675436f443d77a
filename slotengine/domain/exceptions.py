"""
Domain-specific exception hierarchy for the availability engine.
"""


class SchedulingError(Exception):
    """Base class for all engine-level errors."""


class InvalidParametersError(SchedulingError):
    """Raised when resolution parameters (duration, step, buffers) are unusable."""


class InvalidRuleSetError(SchedulingError):
    """Raised when a weekly rule set fails validation."""


class DuplicateOverrideError(SchedulingError):
    """Raised when a schedule carries more than one override for the same date."""


class ScheduleNotFoundError(SchedulingError):
    """Raised when a schedule cannot be loaded from the store."""


class CalendarProviderError(SchedulingError):
    """Raised when busy times cannot be fetched from an external calendar."""
