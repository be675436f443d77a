"""
Interval overlap checks and weekly rule validation.

All intervals are half-open: a range ending at 10:00 and one starting at
10:00 do not overlap. The same predicate is used for minute-of-day
integers and for absolute instants.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from pendulum import DateTime

from .models import BusyBlock, WeeklyRule, Window
from .time_utils import integer_to_day

T = TypeVar("T")


def do_windows_overlap(start_a: T, end_a: T, start_b: T, end_b: T) -> bool:
    """Return True when [start_a, end_a) and [start_b, end_b) intersect."""
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class RuleValidation:
    """Outcome of validating a weekly rule set."""
    is_valid: bool
    error: Optional[str] = None


def validate_weekly_rules(rules: Sequence[WeeklyRule]) -> RuleValidation:
    """
    Validate a weekly rule set and stop at the first problem.

    Every rule must start before it ends. Rules on the same weekday must
    not overlap; days are checked in order of first appearance and pairs
    in input order.
    """
    windows_by_day: Dict[int, List[Window]] = {}

    for rule in rules:
        window = rule.window
        if window.start_minutes >= window.end_minutes:
            return RuleValidation(
                is_valid=False,
                error=(
                    f"Invalid time range for {rule.day_name}: "
                    f"start time must be before end time ({window})"
                ),
            )
        windows_by_day.setdefault(rule.day_of_week, []).append(window)

    for day, windows in windows_by_day.items():
        for i, first in enumerate(windows):
            for second in windows[i + 1:]:
                if do_windows_overlap(
                    first.start_minutes,
                    first.end_minutes,
                    second.start_minutes,
                    second.end_minutes,
                ):
                    return RuleValidation(
                        is_valid=False,
                        error=(
                            f"Overlapping time slots found for {integer_to_day(day)}: "
                            f"{first} and {second}"
                        ),
                    )

    return RuleValidation(is_valid=True)


def padded_interval(
    start: DateTime,
    end: DateTime,
    buffer_before_minutes: int,
    buffer_after_minutes: int,
) -> Tuple[DateTime, DateTime]:
    """Widen a candidate by the buffers it must keep clear of busy time."""
    return (
        start.subtract(minutes=buffer_before_minutes),
        end.add(minutes=buffer_after_minutes),
    )


def overlaps_any_busy_block(
    start: DateTime,
    end: DateTime,
    busy_blocks: Iterable[BusyBlock],
    buffer_before_minutes: int = 0,
    buffer_after_minutes: int = 0,
) -> bool:
    """
    Check a candidate, padded by its buffers, against busy time.

    Buffers pad the candidate only; busy blocks are taken as given.
    """
    padded_start, padded_end = padded_interval(
        start, end, buffer_before_minutes, buffer_after_minutes
    )
    return any(
        do_windows_overlap(padded_start, padded_end, busy.start, busy.end)
        for busy in busy_blocks
    )
