"""
Domain layer - Pure availability logic without external dependencies.
"""

from .conflict_guard import BookingConflictGuard, BookingDecision, BookingStatus, RejectionReason
from .day_slots import generate_day_slots
from .models import (
    AvailabilityOverride,
    BusyBlock,
    EventTypeSettings,
    ResolutionParameters,
    Schedule,
    TimeRange,
    TimeSlot,
    WeeklyRule,
    Window,
)
from .overlap import RuleValidation, do_windows_overlap, validate_weekly_rules
from .resolver import AvailabilityResolver

__all__ = [
    "AvailabilityOverride",
    "AvailabilityResolver",
    "BookingConflictGuard",
    "BookingDecision",
    "BookingStatus",
    "BusyBlock",
    "EventTypeSettings",
    "RejectionReason",
    "ResolutionParameters",
    "RuleValidation",
    "Schedule",
    "TimeRange",
    "TimeSlot",
    "WeeklyRule",
    "Window",
    "do_windows_overlap",
    "generate_day_slots",
    "validate_weekly_rules",
]
