"""
Domain models for availability rules, busy time and bookable slots.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import DuplicateOverrideError, InvalidParametersError
from .time_utils import as_date, integer_to_day, time_to_minutes


@dataclass(frozen=True)
class Window:
    """A time-of-day range such as 09:00-12:00."""
    start_time: str
    end_time: str

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


@dataclass(frozen=True)
class WeeklyRule:
    """
    Recurring availability window on one weekday.

    ``day_of_week`` uses Sunday=0. The start-before-end and no-overlap
    invariants are checked by ``validate_weekly_rules`` rather than here,
    so stored rule sets can still be loaded and reported on.
    """
    day_of_week: int
    start_time: str
    end_time: str

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {self.day_of_week}")

    @property
    def day_name(self) -> str:
        return integer_to_day(self.day_of_week)

    @property
    def window(self) -> Window:
        return Window(start_time=self.start_time, end_time=self.end_time)


@dataclass(frozen=True)
class AvailabilityOverride:
    """
    Exception to the weekly rules for one date.

    - ``is_unavailable`` set: no slots at all on that date.
    - ``windows`` given (even empty): these replace the weekly rules.
    - neither: the weekly rules apply unchanged.
    """
    date: date
    is_unavailable: bool = False
    windows: Optional[Tuple[Window, ...]] = None

    @property
    def replaces_rules(self) -> bool:
        return self.is_unavailable or self.windows is not None


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Half-open overlap: ranges that only touch do not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


BOOKING_SOURCE = "booking"
CALENDAR_SOURCE = "calendar"


@dataclass(frozen=True)
class BusyBlock(TimeRange):
    """
    Time already committed, either by a confirmed booking or by the host's
    external calendar. Built fresh for every resolution request.
    """
    source: str = CALENDAR_SOURCE
    booking_id: Optional[str] = None


@dataclass(frozen=True)
class TimeSlot(TimeRange):
    """A bookable window. Computed on demand, never stored."""

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm – HH:mm (N min)
        """
        weekday = self.start.format("dddd")
        date_str = self.start.format("YYYY-MM-DD")
        time_str = f"{self.start.format('HH:mm')} – {self.end.format('HH:mm')}"
        return f"{weekday}, {date_str} | {time_str} ({self.duration_minutes()} min)"


@dataclass(frozen=True)
class ResolutionParameters:
    """
    Knobs for one slot resolution request.

    Duration and step must be positive and buffers non-negative; the slot
    loop depends on it.
    """
    duration_minutes: int
    slot_step_minutes: int
    minimum_notice_instant: DateTime
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    timezone: str = "UTC"

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise InvalidParametersError(
                f"duration_minutes must be greater than zero, got {self.duration_minutes}"
            )
        if self.slot_step_minutes <= 0:
            raise InvalidParametersError(
                f"slot_step_minutes must be greater than zero, got {self.slot_step_minutes}"
            )
        if self.buffer_before_minutes < 0 or self.buffer_after_minutes < 0:
            raise InvalidParametersError("Buffers must not be negative")


@dataclass(frozen=True)
class EventTypeSettings:
    """
    Booking settings of a bookable event type.

    ``slot_step_minutes`` falls back to the duration when unset.
    """
    duration_minutes: int
    slot_step_minutes: Optional[int] = None
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    min_notice_minutes: int = 60
    max_days_in_advance: Optional[int] = None

    @property
    def effective_step_minutes(self) -> int:
        if self.slot_step_minutes is None:
            return self.duration_minutes
        return self.slot_step_minutes

    def to_parameters(self, now: DateTime, timezone: str) -> ResolutionParameters:
        """Build resolution parameters with the notice cutoff relative to ``now``."""
        return ResolutionParameters(
            duration_minutes=self.duration_minutes,
            slot_step_minutes=self.effective_step_minutes,
            minimum_notice_instant=now.add(minutes=self.min_notice_minutes),
            buffer_before_minutes=self.buffer_before_minutes,
            buffer_after_minutes=self.buffer_after_minutes,
            timezone=timezone,
        )

    def last_bookable_date(self, now: DateTime, timezone: str) -> date | None:
        """Last local date a guest may book, or None when unlimited."""
        if self.max_days_in_advance is None:
            return None
        return as_date(now.in_timezone(timezone).add(days=self.max_days_in_advance))


def index_overrides(overrides: Iterable[AvailabilityOverride]) -> Dict[date, AvailabilityOverride]:
    """
    Key overrides by date.

    Raises:
        DuplicateOverrideError: If two overrides share a date
    """
    by_date: Dict[date, AvailabilityOverride] = {}
    for override in overrides:
        key = as_date(override.date)
        if key in by_date:
            raise DuplicateOverrideError(
                f"More than one override for {override.date.isoformat()}"
            )
        by_date[key] = override
    return by_date


@dataclass
class Schedule:
    """
    A host's availability schedule: weekly rules plus per-date overrides.
    """
    timezone: str = "UTC"
    rules: List[WeeklyRule] = field(default_factory=list)
    overrides: List[AvailabilityOverride] = field(default_factory=list)

    def __post_init__(self):
        pendulum.timezone(self.timezone)
        index_overrides(self.overrides)
