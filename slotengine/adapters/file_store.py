"""
JSON-file backed store for schedules, bookings and calendar busy time.

Implements the ``ScheduleStore``, ``BookingStore`` and
``BusyTimeProvider`` protocols without a database or a calendar account,
which makes it useful for the CLI and for tests.

File layout::

    {
      "bookings": [
        {"id": "b-1", "host_id": "host", "start": "...", "end": "...",
         "status": "confirmed", "timezone": "Europe/Berlin"}
      ],
      "calendar": [
        {"host_id": "host", "start": "...", "end": "..."}
      ]
    }
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import ScheduleNotFoundError
from ..domain.models import BOOKING_SOURCE, CALENDAR_SOURCE, BusyBlock, Schedule

logger = logging.getLogger(__name__)

CONFIRMED = "confirmed"


class FileStore:
    """
    In-process store whose data lives in a single JSON file.

    Writes are serialized by an ``asyncio.Lock`` held for the duration of
    ``transaction()``; the file is rewritten when a transaction that changed
    data completes.
    """

    def __init__(
        self,
        data_file: Optional[Path] = None,
        schedules: Optional[Dict[str, Schedule]] = None,
    ):
        """
        Initialize the store.

        Args:
            data_file: JSON file to load from and save to; None keeps data in memory
            schedules: Schedules by id, usually built from the configuration
        """
        self.data_file = data_file
        self.schedules: Dict[str, Schedule] = dict(schedules or {})
        self.bookings: List[Dict[str, Any]] = []
        self.calendar_events: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()
        self._dirty = False
        self._load()

    def _load(self) -> None:
        """Load bookings and calendar events from the JSON file, if present."""
        if self.data_file is None or not self.data_file.exists():
            return

        with open(self.data_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        self.bookings = list(data.get("bookings", []))
        self.calendar_events = list(data.get("calendar", []))

    def save(self) -> None:
        if self.data_file is None:
            return
        payload = {"bookings": self.bookings, "calendar": self.calendar_events}
        with open(self.data_file, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            self._dirty = False
            yield
            if self._dirty:
                self.save()
                self._dirty = False

    async def get_schedule(self, schedule_id: str) -> Schedule:
        try:
            return self.schedules[schedule_id]
        except KeyError:
            raise ScheduleNotFoundError(f"Unknown schedule: {schedule_id}") from None

    async def confirmed_bookings(
        self,
        host_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[BusyBlock]:
        blocks: List[BusyBlock] = []
        for record in self.bookings:
            if record.get("host_id") != host_id or record.get("status", CONFIRMED) != CONFIRMED:
                continue
            block = self._parse_block(record, BOOKING_SOURCE)
            if block is not None and block.start < end and block.end > start:
                blocks.append(block)
        return blocks

    async def get_busy_blocks(
        self,
        host_id: str,
        start: DateTime,
        end: DateTime,
        timezone: str,
    ) -> List[BusyBlock]:
        blocks: List[BusyBlock] = []
        for event in self.calendar_events:
            if event.get("host_id") != host_id:
                continue
            block = self._parse_block(event, CALENDAR_SOURCE, timezone)
            if block is not None and block.start < end and block.end > start:
                blocks.append(block)
        return blocks

    async def create_booking(
        self,
        host_id: str,
        start: DateTime,
        end: DateTime,
        timezone: str,
    ) -> str:
        booking_id = uuid.uuid4().hex
        self.bookings.append(
            {
                "id": booking_id,
                "host_id": host_id,
                "start": start.to_iso8601_string(),
                "end": end.to_iso8601_string(),
                "status": CONFIRMED,
                "timezone": timezone,
            }
        )
        self._dirty = True
        return booking_id

    async def move_booking(self, booking_id: str, start: DateTime, end: DateTime) -> None:
        for record in self.bookings:
            if record.get("id") == booking_id:
                record["start"] = start.to_iso8601_string()
                record["end"] = end.to_iso8601_string()
                self._dirty = True
                return
        raise KeyError(f"Unknown booking: {booking_id}")

    @staticmethod
    def _parse_block(
        record: Dict[str, Any],
        source: str,
        timezone: str = "UTC",
    ) -> BusyBlock | None:
        try:
            return BusyBlock(
                start=pendulum.parse(record["start"], tz=timezone),
                end=pendulum.parse(record["end"], tz=timezone),
                source=source,
                booking_id=record.get("id") if source == BOOKING_SOURCE else None,
            )
        except (KeyError, ValueError) as exc:
            logger.warning("Skipping invalid %s entry %r: %s", source, record, exc)
            return None
