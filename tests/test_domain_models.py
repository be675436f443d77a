"""
Tests for domain models.
"""

from datetime import date

import pendulum
import pytest

from slotengine.domain.exceptions import DuplicateOverrideError, InvalidParametersError
from slotengine.domain.models import (
    AvailabilityOverride,
    BusyBlock,
    EventTypeSettings,
    ResolutionParameters,
    Schedule,
    TimeRange,
    TimeSlot,
    WeeklyRule,
    Window,
)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        start = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)

    def test_touching_ranges_do_not_overlap(self):
        """Ranges that share only an endpoint are disjoint."""
        tr1 = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 12:00", tz="Europe/Berlin")
        )
        tr2 = TimeRange(
            start=pendulum.parse("2024-11-25 11:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 14:00", tz="Europe/Berlin")
        )
        tr3 = TimeRange(
            start=pendulum.parse("2024-11-25 12:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        )

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)
        assert not tr3.overlaps(tr1)

    def test_contains(self):
        outer = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 12:00", tz="UTC"),
        )
        inner = TimeRange(
            start=pendulum.parse("2024-11-25 11:30", tz="UTC"),
            end=pendulum.parse("2024-11-25 12:00", tz="UTC"),
        )

        assert outer.contains(inner)
        assert not inner.contains(outer)


class TestSlotsAndBusyBlocks:
    """Tests for the TimeRange subclasses."""

    def test_busy_block_defaults_to_calendar_source(self):
        block = BusyBlock(
            start=pendulum.parse("2024-11-25 10:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 11:00", tz="UTC"),
        )

        assert block.source == "calendar"
        assert block.booking_id is None

    def test_busy_block_keeps_start_before_end_invariant(self):
        with pytest.raises(ValueError):
            BusyBlock(
                start=pendulum.parse("2024-11-25 11:00", tz="UTC"),
                end=pendulum.parse("2024-11-25 11:00", tz="UTC"),
            )

    def test_format_display(self):
        slot = TimeSlot(
            start=pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 09:30", tz="Europe/Berlin"),
        )

        assert slot.format_display() == "Monday, 2024-11-25 | 09:00 – 09:30 (30 min)"


class TestWeeklyRule:
    """Tests for WeeklyRule model."""

    def test_day_name_uses_sunday_as_zero(self):
        assert WeeklyRule(day_of_week=0, start_time="09:00", end_time="10:00").day_name == "sunday"
        assert WeeklyRule(day_of_week=1, start_time="09:00", end_time="10:00").day_name == "monday"

    def test_day_out_of_range_raises_error(self):
        with pytest.raises(ValueError, match="day_of_week"):
            WeeklyRule(day_of_week=7, start_time="09:00", end_time="10:00")

    def test_window(self):
        rule = WeeklyRule(day_of_week=1, start_time="09:00", end_time="10:30")

        assert rule.window == Window(start_time="09:00", end_time="10:30")
        assert rule.window.start_minutes == 540
        assert rule.window.end_minutes == 630
        assert str(rule.window) == "09:00-10:30"


class TestAvailabilityOverride:
    """Tests for AvailabilityOverride model."""

    def test_unavailable_replaces_rules(self):
        override = AvailabilityOverride(date=date(2024, 11, 25), is_unavailable=True)
        assert override.replaces_rules

    def test_empty_windows_replace_rules(self):
        override = AvailabilityOverride(date=date(2024, 11, 25), windows=())
        assert override.replaces_rules

    def test_plain_override_keeps_rules(self):
        override = AvailabilityOverride(date=date(2024, 11, 25))
        assert not override.replaces_rules

    def test_schedule_rejects_duplicate_dates(self):
        with pytest.raises(DuplicateOverrideError, match="2024-11-25"):
            Schedule(
                timezone="UTC",
                overrides=[
                    AvailabilityOverride(date=date(2024, 11, 25), is_unavailable=True),
                    AvailabilityOverride(date=date(2024, 11, 25), windows=()),
                ],
            )


class TestParameters:
    """Tests for ResolutionParameters and EventTypeSettings."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"duration_minutes": 0, "slot_step_minutes": 15},
            {"duration_minutes": -30, "slot_step_minutes": 15},
            {"duration_minutes": 30, "slot_step_minutes": 0},
            {"duration_minutes": 30, "slot_step_minutes": 15, "buffer_before_minutes": -5},
        ],
    )
    def test_rejects_unusable_parameters(self, kwargs):
        with pytest.raises(InvalidParametersError):
            ResolutionParameters(
                minimum_notice_instant=pendulum.datetime(2020, 1, 1, tz="UTC"),
                **kwargs,
            )

    def test_step_defaults_to_duration(self):
        assert EventTypeSettings(duration_minutes=45).effective_step_minutes == 45
        assert EventTypeSettings(duration_minutes=45, slot_step_minutes=15).effective_step_minutes == 15

    def test_zero_step_is_not_replaced_by_duration(self):
        settings = EventTypeSettings(duration_minutes=30, slot_step_minutes=0)

        assert settings.effective_step_minutes == 0
        with pytest.raises(InvalidParametersError):
            settings.to_parameters(pendulum.datetime(2024, 11, 25, tz="UTC"), "UTC")

    def test_to_parameters_applies_min_notice(self):
        now = pendulum.parse("2024-11-25 08:00", tz="Europe/Berlin")
        settings = EventTypeSettings(
            duration_minutes=30,
            buffer_before_minutes=5,
            buffer_after_minutes=10,
            min_notice_minutes=120,
        )

        parameters = settings.to_parameters(now, "Europe/Berlin")

        assert parameters.minimum_notice_instant == pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin")
        assert parameters.slot_step_minutes == 30
        assert parameters.buffer_before_minutes == 5
        assert parameters.buffer_after_minutes == 10
        assert parameters.timezone == "Europe/Berlin"

    def test_last_bookable_date(self):
        now = pendulum.parse("2024-11-24 23:30", tz="Europe/Berlin")

        assert EventTypeSettings(duration_minutes=30).last_bookable_date(now, "Europe/Berlin") is None
        assert EventTypeSettings(
            duration_minutes=30, max_days_in_advance=7
        ).last_bookable_date(now, "Europe/Berlin") == date(2024, 12, 1)
