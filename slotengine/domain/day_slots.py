"""
Slot generation for a single calendar day.

This is pure domain logic: no I/O, no clock access. The caller supplies
the anchor day, the windows that apply to it and everything that is
already busy.
"""

from typing import List, Sequence

from pendulum import DateTime

from .exceptions import InvalidParametersError
from .models import BusyBlock, TimeSlot, Window
from .overlap import overlaps_any_busy_block
from .time_utils import at_minute_of_day


def window_bounds(day: DateTime, window: Window) -> tuple[DateTime, DateTime]:
    """Absolute start and end of a time-of-day window on the anchor day."""
    return (
        at_minute_of_day(day, window.start_minutes),
        at_minute_of_day(day, window.end_minutes),
    )


def generate_day_slots(
    day: DateTime,
    windows: Sequence[Window],
    duration_minutes: int,
    slot_step_minutes: int,
    busy_blocks: Sequence[BusyBlock],
    buffer_before_minutes: int,
    buffer_after_minutes: int,
    minimum_notice: DateTime,
) -> List[TimeSlot]:
    """
    Produce the bookable slots for one day.

    For each window a cursor starts at the window start and advances by
    ``slot_step_minutes`` while a full ``duration_minutes`` meeting still
    fits. A cursor position is skipped when it starts before
    ``minimum_notice`` or when the slot, padded by the buffers, overlaps
    a busy block. Buffers are checked against busy time only, so a slot
    may start right at the window start.

    Windows are processed in the given order; slots are ascending within
    a window but not re-sorted across windows.

    Args:
        day: Local midnight of the day, in the target timezone
        windows: Effective windows for that day
        duration_minutes: Meeting length
        slot_step_minutes: Distance between candidate start times
        busy_blocks: Bookings and calendar events that must stay clear
        buffer_before_minutes: Idle time required before a slot
        buffer_after_minutes: Idle time required after a slot
        minimum_notice: Earliest instant a slot may start

    Returns:
        List of TimeSlot objects
    """
    if duration_minutes <= 0 or slot_step_minutes <= 0:
        raise InvalidParametersError("Duration and slot step must be greater than zero")

    slots: List[TimeSlot] = []

    for window in windows:
        cursor, window_end = window_bounds(day, window)

        while cursor.add(minutes=duration_minutes) <= window_end:
            slot_end = cursor.add(minutes=duration_minutes)

            if cursor >= minimum_notice and not overlaps_any_busy_block(
                cursor,
                slot_end,
                busy_blocks,
                buffer_before_minutes,
                buffer_after_minutes,
            ):
                slots.append(TimeSlot(start=cursor, end=slot_end))

            cursor = cursor.add(minutes=slot_step_minutes)

    return slots
