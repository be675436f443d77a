"""
Helpers for "HH:MM" strings, minutes-of-day and weekday names.

Parsing is lenient on purpose: stored rules are read as-is and a
malformed component becomes 0 instead of raising. Strict validation
happens where data enters the system (see ``slotengine.config``).
"""

from datetime import date
from typing import Dict, Tuple

from pendulum import DateTime

MINUTES_PER_DAY = 24 * 60

DAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


_DAY_INDEX: Dict[str, int] = {name: index for index, name in enumerate(DAY_NAMES)}


def _to_int(part: str) -> int:
    try:
        return int(part)
    except ValueError:
        return 0


def parse_time_string(value: str) -> Tuple[int, int]:
    """
    Split "HH:MM" or "HH:MM:SS" into (hour, minute).

    Missing or non-numeric parts default to 0; seconds are ignored.
    Never raises.
    """
    parts = value.split(":")
    hour = _to_int(parts[0])
    minute = _to_int(parts[1]) if len(parts) > 1 else 0
    return hour, minute


def time_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hour, minute = parse_time_string(value)
    return hour * 60 + minute


def day_to_integer(name: str) -> int | None:
    """
    Map a weekday name to its index (Sunday=0).

    Returns None for unknown names; callers drop such entries.
    """
    return _DAY_INDEX.get(name.strip().lower())


def integer_to_day(index: int) -> str:
    """Map a weekday index (Sunday=0) back to its lower-case name."""
    return DAY_NAMES[index % 7]


def weekday_index(day: date) -> int:
    """Weekday of a calendar date with Sunday=0."""
    return day.isoweekday() % 7


def at_minute_of_day(day: DateTime, minutes: int) -> DateTime:
    """
    Place a minute-of-day on the anchor day, in the anchor's timezone.

    The result is wall-clock time, so 09:00 stays 09:00 on DST transition
    days. Values of 1440 and above roll over to the following day(s).
    """
    extra_days, minute_of_day = divmod(minutes, MINUTES_PER_DAY)
    base = day.add(days=extra_days) if extra_days else day
    return base.set(
        hour=minute_of_day // 60,
        minute=minute_of_day % 60,
        second=0,
        microsecond=0,
    )


def as_date(value: date) -> date:
    """Normalize any date (or date subclass) to a plain ``datetime.date``."""
    return date(value.year, value.month, value.day)
