"""
Commit-time conflict check for a single booking candidate.

The slot list a guest sees can go stale between generation and
submission. This guard re-applies the padded overlap test against the
current busy time and is the authoritative gate. It must be called inside
the booking store's transaction so two racing guests cannot both win.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from pendulum import DateTime

from .models import BusyBlock
from .overlap import overlaps_any_busy_block


class BookingStatus(str, Enum):
    """Terminal state of a booking request."""
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    CONFLICT = "conflict"
    PAST_NOTICE = "past_notice"
    OUTSIDE_AVAILABILITY = "outside_availability"
    BEYOND_BOOKING_WINDOW = "beyond_booking_window"


REJECTION_MESSAGES = {
    RejectionReason.CONFLICT: "slot no longer available",
    RejectionReason.PAST_NOTICE: "slot starts before the minimum notice period",
    RejectionReason.OUTSIDE_AVAILABILITY: "slot is outside the host's availability",
    RejectionReason.BEYOND_BOOKING_WINDOW: "slot is too far in advance",
}


@dataclass(frozen=True)
class BookingDecision:
    """Terminal outcome of a booking request: confirmed or rejected with a reason."""
    status: BookingStatus
    reason: Optional[RejectionReason] = None

    @property
    def accepted(self) -> bool:
        return self.status is BookingStatus.CONFIRMED

    @property
    def message(self) -> str | None:
        return REJECTION_MESSAGES[self.reason] if self.reason else None

    @classmethod
    def confirmed(cls) -> "BookingDecision":
        return cls(status=BookingStatus.CONFIRMED)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "BookingDecision":
        return cls(status=BookingStatus.REJECTED, reason=reason)


class BookingConflictGuard:
    """
    Accepts or rejects a candidate [start, end) against busy time.

    Uses the same buffers as slot generation, so anything the generator
    would have skipped is rejected here too.
    """

    def __init__(self, buffer_before_minutes: int = 0, buffer_after_minutes: int = 0):
        self.buffer_before_minutes = buffer_before_minutes
        self.buffer_after_minutes = buffer_after_minutes

    def has_conflict(
        self,
        start: DateTime,
        end: DateTime,
        busy_blocks: Iterable[BusyBlock],
        exclude_booking_id: str | None = None,
    ) -> bool:
        """
        Check the padded candidate against busy time.

        Busy blocks that belong to ``exclude_booking_id`` are ignored, so a
        booking being rescheduled does not conflict with itself.
        """
        relevant = [
            busy for busy in busy_blocks
            if exclude_booking_id is None or busy.booking_id != exclude_booking_id
        ]
        return overlaps_any_busy_block(
            start,
            end,
            relevant,
            self.buffer_before_minutes,
            self.buffer_after_minutes,
        )

    def evaluate(
        self,
        start: DateTime,
        end: DateTime,
        busy_blocks: Iterable[BusyBlock],
        minimum_notice: DateTime | None = None,
        exclude_booking_id: str | None = None,
    ) -> BookingDecision:
        """Decide a booking request: Confirmed, Rejected(PastNotice) or Rejected(Conflict)."""
        if minimum_notice is not None and start < minimum_notice:
            return BookingDecision.rejected(RejectionReason.PAST_NOTICE)

        if self.has_conflict(start, end, busy_blocks, exclude_booking_id):
            return BookingDecision.rejected(RejectionReason.CONFLICT)

        return BookingDecision.confirmed()
