"""
Application services for listing slots and committing bookings.

The service fetches schedules, bookings and calendar busy time through
small protocols and delegates every decision to the domain layer
(``AvailabilityResolver`` and ``BookingConflictGuard``). Persistence and
calendar providers stay behind the protocols, which keeps the service
easy to exercise with in-memory fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import AsyncContextManager, Callable, Dict, List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..domain.conflict_guard import BookingConflictGuard, BookingDecision, RejectionReason
from ..domain.exceptions import CalendarProviderError
from ..domain.models import BusyBlock, EventTypeSettings, Schedule, TimeSlot
from ..domain.resolver import AvailabilityResolver

logger = logging.getLogger(__name__)

# Busy-time queries are widened on both sides to cover timezone edges.
QUERY_MARGIN_DAYS = 1


class ScheduleStore(Protocol):
    """Read access to availability schedules."""

    async def get_schedule(self, schedule_id: str) -> Schedule:
        """Return the schedule or raise ScheduleNotFoundError."""


class BookingStore(Protocol):
    """Read/write access to bookings, with a transaction scope."""

    def transaction(self) -> AsyncContextManager[None]:
        """Scope in which reading busy time and creating a booking is atomic."""

    async def confirmed_bookings(
        self,
        host_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[BusyBlock]:
        """Return confirmed bookings of the host that overlap [start, end)."""

    async def create_booking(
        self,
        host_id: str,
        start: DateTime,
        end: DateTime,
        timezone: str,
    ) -> str:
        """Persist a confirmed booking and return its id."""

    async def move_booking(self, booking_id: str, start: DateTime, end: DateTime) -> None:
        """Change the time of an existing booking."""


class BusyTimeProvider(Protocol):
    """Normalized busy time from the host's connected external calendar."""

    async def get_busy_blocks(
        self,
        host_id: str,
        start: DateTime,
        end: DateTime,
        timezone: str,
    ) -> List[BusyBlock]:
        """Return busy blocks, raising CalendarProviderError on failure."""


@dataclass(frozen=True)
class BookingResult:
    """Outcome of a booking attempt; ``booking_id`` is set when confirmed."""
    decision: BookingDecision
    booking_id: Optional[str] = None
    slot: Optional[TimeSlot] = None


class AvailabilityService:
    """
    Orchestrates busy-time retrieval, slot resolution and booking commits.

    Dependency inversion toward protocols makes it easy to plug in a real
    database and calendar integration, or the file-backed store in tests.
    """

    def __init__(
        self,
        schedule_store: ScheduleStore,
        booking_store: BookingStore,
        busy_time_provider: BusyTimeProvider | None = None,
        clock: Callable[[], DateTime] = pendulum.now,
    ) -> None:
        self._schedule_store = schedule_store
        self._booking_store = booking_store
        self._busy_time_provider = busy_time_provider
        self._clock = clock

    async def list_slots(
        self,
        *,
        host_id: str,
        schedule_id: str,
        settings: EventTypeSettings,
        from_date: date,
        to_date: date,
    ) -> List[TimeSlot]:
        """
        Retrieve schedule and busy data, then compute available slots.

        The range is clamped to ``max_days_in_advance`` when configured.
        """
        by_date = await self.list_slots_by_date(
            host_id=host_id,
            schedule_id=schedule_id,
            settings=settings,
            from_date=from_date,
            to_date=to_date,
        )
        slots: List[TimeSlot] = []
        for day_slots in by_date.values():
            slots.extend(day_slots)
        return slots

    async def list_slots_by_date(
        self,
        *,
        host_id: str,
        schedule_id: str,
        settings: EventTypeSettings,
        from_date: date,
        to_date: date,
    ) -> Dict[date, List[TimeSlot]]:
        """Same as ``list_slots`` but grouped per local date."""
        schedule = await self._schedule_store.get_schedule(schedule_id)
        now = self._clock()

        last_date = settings.last_bookable_date(now, schedule.timezone)
        if last_date is not None and last_date < to_date:
            logger.debug("Clamping range end %s to %s", to_date, last_date)
            to_date = last_date

        if from_date > to_date:
            return {}

        resolver = AvailabilityResolver.from_schedule(schedule)
        range_start = resolver.anchor(from_date)
        range_end = resolver.anchor(to_date).add(days=1)
        busy_blocks = await self.fetch_busy_blocks(
            host_id=host_id,
            start=range_start,
            end=range_end,
            timezone=schedule.timezone,
        )

        return resolver.slots_by_date(
            from_date,
            to_date,
            settings.to_parameters(now, schedule.timezone),
            busy_blocks,
        )

    async def fetch_busy_blocks(
        self,
        *,
        host_id: str,
        start: DateTime,
        end: DateTime,
        timezone: str,
    ) -> List[BusyBlock]:
        """
        Collect confirmed bookings and external calendar busy time.

        A failing calendar provider is logged and treated as having no busy
        time, so an outage degrades to booking-only conflict checks.
        """
        query_start = start.subtract(days=QUERY_MARGIN_DAYS)
        query_end = end.add(days=QUERY_MARGIN_DAYS)

        busy_blocks = list(
            await self._booking_store.confirmed_bookings(host_id, query_start, query_end)
        )

        if self._busy_time_provider is not None:
            try:
                busy_blocks.extend(
                    await self._busy_time_provider.get_busy_blocks(
                        host_id, query_start, query_end, timezone
                    )
                )
            except CalendarProviderError as exc:
                logger.warning("Failed to get busy times for host %s: %s", host_id, exc)

        return busy_blocks

    async def check_slot(
        self,
        *,
        host_id: str,
        schedule_id: str,
        settings: EventTypeSettings,
        start: DateTime,
        exclude_booking_id: str | None = None,
    ) -> BookingDecision:
        """
        Evaluate a candidate start without booking it.

        Checks, in order: the advance-booking limit, the schedule's effective
        windows, then minimum notice and conflicts with busy time (buffers
        included) through the conflict guard.
        """
        schedule = await self._schedule_store.get_schedule(schedule_id)
        end = start.add(minutes=settings.duration_minutes)
        return await self._evaluate(
            host_id=host_id,
            schedule=schedule,
            settings=settings,
            candidate=TimeSlot(start=start, end=end),
            exclude_booking_id=exclude_booking_id,
        )

    async def book(
        self,
        *,
        host_id: str,
        schedule_id: str,
        settings: EventTypeSettings,
        start: DateTime,
    ) -> BookingResult:
        """
        Book a slot if it is still free.

        The conflict check and the insert run inside the booking store's
        transaction. A rejection is returned, not raised; the caller decides
        whether to re-query slots and resubmit.
        """
        schedule = await self._schedule_store.get_schedule(schedule_id)
        candidate = TimeSlot(start=start, end=start.add(minutes=settings.duration_minutes))

        async with self._booking_store.transaction():
            decision = await self._evaluate(
                host_id=host_id,
                schedule=schedule,
                settings=settings,
                candidate=candidate,
            )
            if not decision.accepted:
                logger.info("Rejected booking for %s at %s: %s", host_id, candidate, decision.message)
                return BookingResult(decision=decision, slot=candidate)

            booking_id = await self._booking_store.create_booking(
                host_id, candidate.start, candidate.end, schedule.timezone
            )

        logger.info("Confirmed booking %s for %s at %s", booking_id, host_id, candidate)
        return BookingResult(decision=decision, booking_id=booking_id, slot=candidate)

    async def reschedule(
        self,
        *,
        booking_id: str,
        host_id: str,
        schedule_id: str,
        settings: EventTypeSettings,
        start: DateTime,
    ) -> BookingResult:
        """Move an existing booking; the booking itself does not count as busy."""
        schedule = await self._schedule_store.get_schedule(schedule_id)
        candidate = TimeSlot(start=start, end=start.add(minutes=settings.duration_minutes))

        async with self._booking_store.transaction():
            decision = await self._evaluate(
                host_id=host_id,
                schedule=schedule,
                settings=settings,
                candidate=candidate,
                exclude_booking_id=booking_id,
            )
            if not decision.accepted:
                logger.info("Rejected reschedule of %s to %s: %s", booking_id, candidate, decision.message)
                return BookingResult(decision=decision, booking_id=booking_id, slot=candidate)

            await self._booking_store.move_booking(booking_id, candidate.start, candidate.end)

        logger.info("Rescheduled booking %s to %s", booking_id, candidate)
        return BookingResult(decision=decision, booking_id=booking_id, slot=candidate)

    async def _evaluate(
        self,
        *,
        host_id: str,
        schedule: Schedule,
        settings: EventTypeSettings,
        candidate: TimeSlot,
        exclude_booking_id: str | None = None,
    ) -> BookingDecision:
        now = self._clock()
        minimum_notice = now.add(minutes=settings.min_notice_minutes)

        if settings.max_days_in_advance is not None and candidate.start > now.add(
            days=settings.max_days_in_advance
        ):
            return BookingDecision.rejected(RejectionReason.BEYOND_BOOKING_WINDOW)

        resolver = AvailabilityResolver.from_schedule(schedule)
        if not resolver.is_within_availability(candidate):
            return BookingDecision.rejected(RejectionReason.OUTSIDE_AVAILABILITY)

        busy_blocks = await self.fetch_busy_blocks(
            host_id=host_id,
            start=candidate.start,
            end=candidate.end,
            timezone=schedule.timezone,
        )
        guard = BookingConflictGuard(
            buffer_before_minutes=settings.buffer_before_minutes,
            buffer_after_minutes=settings.buffer_after_minutes,
        )
        return guard.evaluate(
            candidate.start,
            candidate.end,
            busy_blocks,
            minimum_notice=minimum_notice,
            exclude_booking_id=exclude_booking_id,
        )
