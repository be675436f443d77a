"""
Tests for the JSON-file backed store.
"""

import asyncio
import json

import pendulum
import pytest

from slotengine.adapters.file_store import FileStore
from slotengine.domain.exceptions import ScheduleNotFoundError
from slotengine.domain.models import Schedule

DATA = {
    "bookings": [
        {"id": "b-1", "host_id": "host", "start": "2024-11-25T10:00:00+00:00",
         "end": "2024-11-25T10:30:00+00:00", "status": "confirmed"},
        {"id": "b-2", "host_id": "host", "start": "2024-11-25T11:00:00+00:00",
         "end": "2024-11-25T11:30:00+00:00", "status": "cancelled"},
        {"id": "b-3", "host_id": "host", "start": "not a date", "end": "2024-11-25T11:30:00+00:00"},
    ],
    "calendar": [
        {"host_id": "host", "start": "2024-11-25 13:00", "end": "2024-11-25 14:00"},
        {"host_id": "other", "start": "2024-11-25 13:00", "end": "2024-11-25 14:00"},
        {"host_id": "host", "start": "2024-11-26 13:00"},
    ],
}

DAY_START = pendulum.datetime(2024, 11, 25, tz="UTC")
DAY_END = pendulum.datetime(2024, 11, 26, tz="UTC")


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "data.json"
    path.write_text(json.dumps(DATA), encoding="utf-8")
    return path


class TestFileStore:
    """Tests for loading and querying file data."""

    def test_missing_file_starts_empty(self, tmp_path):
        store = FileStore(data_file=tmp_path / "missing.json")

        assert store.bookings == []
        assert store.calendar_events == []

    def test_confirmed_bookings_only(self, data_file):
        store = FileStore(data_file=data_file)

        blocks = asyncio.run(store.confirmed_bookings("host", DAY_START, DAY_END))

        assert [block.booking_id for block in blocks] == ["b-1"]
        assert blocks[0].source == "booking"

    def test_bookings_outside_window_are_filtered(self, data_file):
        store = FileStore(data_file=data_file)

        blocks = asyncio.run(
            store.confirmed_bookings("host", DAY_START.add(hours=10, minutes=30), DAY_END)
        )

        assert blocks == []

    def test_calendar_events_use_requested_timezone(self, data_file):
        store = FileStore(data_file=data_file)

        blocks = asyncio.run(
            store.get_busy_blocks("host", DAY_START, DAY_END, "Europe/Berlin")
        )

        assert len(blocks) == 1
        assert blocks[0].start == pendulum.datetime(2024, 11, 25, 12, 0, tz="UTC")
        assert blocks[0].source == "calendar"

    def test_invalid_entries_are_skipped_with_warning(self, data_file, caplog):
        store = FileStore(data_file=data_file)

        asyncio.run(store.confirmed_bookings("host", DAY_START, DAY_END))

        assert "Skipping invalid booking entry" in caplog.text

    def test_create_booking_persists_on_commit(self, data_file):
        store = FileStore(data_file=data_file)

        async def create():
            async with store.transaction():
                return await store.create_booking(
                    "host",
                    pendulum.datetime(2024, 11, 25, 15, 0, tz="UTC"),
                    pendulum.datetime(2024, 11, 25, 15, 30, tz="UTC"),
                    "UTC",
                )

        booking_id = asyncio.run(create())

        saved = json.loads(data_file.read_text(encoding="utf-8"))
        assert saved["bookings"][-1]["id"] == booking_id
        assert saved["bookings"][-1]["status"] == "confirmed"
        assert FileStore(data_file=data_file).bookings[-1]["id"] == booking_id

    def test_read_only_transaction_does_not_write(self, data_file):
        store = FileStore(data_file=data_file)
        before = data_file.read_text(encoding="utf-8")

        async def read():
            async with store.transaction():
                await store.confirmed_bookings("host", DAY_START, DAY_END)

        asyncio.run(read())

        assert data_file.read_text(encoding="utf-8") == before

    def test_move_unknown_booking(self):
        store = FileStore()

        with pytest.raises(KeyError):
            asyncio.run(store.move_booking("nope", DAY_START, DAY_END))

    def test_get_schedule(self):
        schedule = Schedule(timezone="UTC")
        store = FileStore(schedules={"default": schedule})

        assert asyncio.run(store.get_schedule("default")) is schedule
        with pytest.raises(ScheduleNotFoundError):
            asyncio.run(store.get_schedule("missing"))
