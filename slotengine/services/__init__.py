"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import (
    AvailabilityService,
    BookingResult,
    BookingStore,
    BusyTimeProvider,
    ScheduleStore,
)

__all__ = [
    "AvailabilityService",
    "BookingResult",
    "BookingStore",
    "BusyTimeProvider",
    "ScheduleStore",
]
