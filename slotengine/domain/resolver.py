"""
Resolves a schedule into bookable slots over a date range.

Overrides take precedence over weekly rules and are all-or-nothing per
date: an override either blocks the date or replaces its windows. Override
windows are never merged with the weekly rules of the same weekday.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Sequence

import pendulum
from pendulum import DateTime

from .day_slots import generate_day_slots, window_bounds
from .models import (
    AvailabilityOverride,
    BusyBlock,
    ResolutionParameters,
    Schedule,
    TimeRange,
    TimeSlot,
    WeeklyRule,
    Window,
    index_overrides,
)
from .time_utils import as_date, weekday_index

logger = logging.getLogger(__name__)


def iter_dates(from_date: date, to_date: date) -> Iterator[date]:
    """Yield each calendar date from ``from_date`` to ``to_date`` inclusive."""
    current = as_date(from_date)
    last = as_date(to_date)
    while current <= last:
        yield current
        current += timedelta(days=1)


class AvailabilityResolver:
    """
    Computes available slots from weekly rules, date overrides and busy time.

    Algorithm:
    1. For each date in the range, determine the effective windows
       (override wins over weekly rules)
    2. Anchor the date at local midnight in the target timezone
    3. Generate the day's slots against the busy blocks
    4. Concatenate the days in chronological order
    """

    def __init__(
        self,
        rules: Iterable[WeeklyRule],
        overrides: Iterable[AvailabilityOverride] = (),
        timezone: str = "UTC",
    ):
        self.rules = list(rules)
        self.timezone = timezone
        self._overrides: Dict[date, AvailabilityOverride] = index_overrides(overrides)

    @classmethod
    def from_schedule(cls, schedule: Schedule) -> "AvailabilityResolver":
        return cls(
            rules=schedule.rules,
            overrides=schedule.overrides,
            timezone=schedule.timezone,
        )

    def override_for(self, day: date) -> AvailabilityOverride | None:
        return self._overrides.get(as_date(day))

    def effective_windows(self, day: date) -> List[Window]:
        """
        Windows that apply on a given date.

        An unavailable override yields nothing, an override with windows
        yields exactly those windows, otherwise the weekly rules for the
        date's weekday apply.
        """
        override = self._overrides.get(as_date(day))

        if override is not None and override.is_unavailable:
            return []

        if override is not None and override.windows is not None:
            return list(override.windows)

        day_of_week = weekday_index(day)
        return [rule.window for rule in self.rules if rule.day_of_week == day_of_week]

    def anchor(self, day: date, timezone: str | None = None) -> DateTime:
        """Local midnight of ``day`` in the given (or the schedule's) timezone."""
        return pendulum.datetime(day.year, day.month, day.day, tz=timezone or self.timezone)

    def resolve(
        self,
        from_date: date,
        to_date: date,
        parameters: ResolutionParameters,
        busy_blocks: Sequence[BusyBlock] = (),
    ) -> List[TimeSlot]:
        """
        Find all bookable slots between two dates, inclusive.

        Args:
            from_date: First calendar date in the target timezone
            to_date: Last calendar date in the target timezone
            parameters: Duration, step, buffers, notice cutoff and timezone
            busy_blocks: Committed time from bookings and external calendars

        Returns:
            List of TimeSlot objects in chronological date order
        """
        slots: List[TimeSlot] = []
        for day_slots in self.slots_by_date(from_date, to_date, parameters, busy_blocks).values():
            slots.extend(day_slots)
        return slots

    def slots_by_date(
        self,
        from_date: date,
        to_date: date,
        parameters: ResolutionParameters,
        busy_blocks: Sequence[BusyBlock] = (),
    ) -> Dict[date, List[TimeSlot]]:
        """Same as ``resolve`` but grouped per date; dates without slots are omitted."""
        busy = list(busy_blocks)
        result: Dict[date, List[TimeSlot]] = {}

        for day in iter_dates(from_date, to_date):
            windows = self.effective_windows(day)
            if not windows:
                logger.debug("No effective windows on %s", day.isoformat())
                continue

            day_slots = generate_day_slots(
                day=self.anchor(day, parameters.timezone),
                windows=windows,
                duration_minutes=parameters.duration_minutes,
                slot_step_minutes=parameters.slot_step_minutes,
                busy_blocks=busy,
                buffer_before_minutes=parameters.buffer_before_minutes,
                buffer_after_minutes=parameters.buffer_after_minutes,
                minimum_notice=parameters.minimum_notice_instant,
            )
            logger.debug(
                "%s: %d window(s), %d slot(s)", day.isoformat(), len(windows), len(day_slots)
            )
            if day_slots:
                result[day] = day_slots

        return result

    def is_within_availability(self, candidate: TimeRange, timezone: str | None = None) -> bool:
        """
        Check that a candidate lies entirely inside one effective window
        of its local date.
        """
        tz = timezone or self.timezone
        local_start = candidate.start.in_timezone(tz)
        day = as_date(local_start)
        anchor = self.anchor(day, tz)

        for window in self.effective_windows(day):
            window_start, window_end = window_bounds(anchor, window)
            if window_end > window_start and TimeRange(window_start, window_end).contains(candidate):
                return True
        return False
