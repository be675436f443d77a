"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
import re
from datetime import date
from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import InvalidRuleSetError
from .domain.models import AvailabilityOverride, EventTypeSettings, Schedule, WeeklyRule, Window
from .domain.overlap import validate_weekly_rules
from .domain.time_utils import day_to_integer

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^(?:(?:[01]\d|2[0-3]):[0-5]\d(?::[0-5]\d)?|24:00(?::00)?)$")


def _check_time(value: str) -> str:
    if not TIME_PATTERN.match(value):
        raise ValueError(f"Time must be formatted as HH:MM or HH:MM:SS, got '{value}'")
    return value


class WindowConfig(BaseModel):
    """A time-of-day window, e.g. {start: "09:00", end: "12:00"}."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _check_time(value)

    def to_window(self) -> Window:
        return Window(start_time=self.start, end_time=self.end)


class WeeklyRuleConfig(WindowConfig):
    """Recurring window on a weekday, given by name ("monday") or index (Sunday=0)."""
    day: str | int

    def day_index(self) -> int | None:
        if isinstance(self.day, int):
            return self.day if 0 <= self.day <= 6 else None
        return day_to_integer(self.day)


class OverrideConfig(BaseModel):
    """Date-specific exception to the weekly rules."""
    date: date
    unavailable: bool = False
    windows: Optional[List[WindowConfig]] = None

    def to_override(self) -> AvailabilityOverride:
        windows = None
        if self.windows is not None:
            windows = tuple(window.to_window() for window in self.windows)
        return AvailabilityOverride(
            date=self.date,
            is_unavailable=self.unavailable,
            windows=windows,
        )


class ScheduleConfig(BaseModel):
    """Weekly rules plus overrides."""
    rules: List[WeeklyRuleConfig] = Field(default_factory=list)
    overrides: List[OverrideConfig] = Field(default_factory=list)

    @field_validator("rules")
    @classmethod
    def drop_unknown_days(cls, value: List[WeeklyRuleConfig]) -> List[WeeklyRuleConfig]:
        """Rules whose day cannot be resolved are dropped, not rejected."""
        kept: List[WeeklyRuleConfig] = []
        for rule in value:
            if rule.day_index() is None:
                logger.warning("Dropping rule with unknown day of week: %r", rule.day)
                continue
            kept.append(rule)
        return kept

    @field_validator("overrides")
    @classmethod
    def validate_unique_dates(cls, value: List[OverrideConfig]) -> List[OverrideConfig]:
        """Ensure there is at most one override per date."""
        seen: set[date] = set()
        for override in value:
            if override.date in seen:
                raise ValueError(f"Duplicate override for {override.date.isoformat()}")
            seen.add(override.date)
        return value

    @model_validator(mode="after")
    def validate_rule_set(self) -> "ScheduleConfig":
        """Reject inverted or overlapping weekly windows."""
        result = validate_weekly_rules(self.weekly_rules())
        if not result.is_valid:
            raise InvalidRuleSetError(result.error)
        return self

    def weekly_rules(self) -> List[WeeklyRule]:
        return [
            WeeklyRule(day_of_week=rule.day_index(), start_time=rule.start, end_time=rule.end)
            for rule in self.rules
        ]

    def to_schedule(self, timezone: str) -> Schedule:
        return Schedule(
            timezone=timezone,
            rules=self.weekly_rules(),
            overrides=[override.to_override() for override in self.overrides],
        )


class EventTypeConfig(BaseModel):
    """Booking settings of the event type being offered."""
    duration_minutes: int = 30
    slot_step_minutes: Optional[int] = None
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    min_notice_minutes: int = 60
    max_days_in_advance: Optional[int] = None

    @field_validator("duration_minutes", "slot_step_minutes")
    @classmethod
    def validate_positive(cls, value: Optional[int]) -> Optional[int]:
        """Duration and step must be greater than zero."""
        if value is not None and value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator(
        "buffer_before_minutes",
        "buffer_after_minutes",
        "min_notice_minutes",
        "max_days_in_advance",
    )
    @classmethod
    def validate_not_negative(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError(f"Value must not be negative, got {value}")
        return value

    def to_settings(self) -> EventTypeSettings:
        return EventTypeSettings(**self.model_dump())


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    host_id: str = "host"
    schedule_id: str = "default"
    event_type: EventTypeConfig = Field(default_factory=EventTypeConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    data_file: Optional[Path] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def build_schedule(self) -> Schedule:
        return self.schedule.to_schedule(self.timezone)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``data_file`` is resolved against the config file's directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
            InvalidRuleSetError: If weekly rules are inverted or overlap
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if config.data_file is not None and not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file
        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
