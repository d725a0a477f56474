"""Configuration for the watcher loops."""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class WatcherConfig(BaseSettings):
    """
    Polling and morning briefing schedule.

    All settings can be overridden via WATCHER_* environment variables.
    The briefing time is wall-clock time in ``Settings.timezone``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WATCHER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    interval_minutes: int = Field(
        default=30,
        ge=1,
        le=24 * 60,
        description="Minutes between two source checks",
    )
    briefing_time: str = Field(
        default="08:00",
        description="Daily briefing time as HH:MM",
    )
    briefing_enabled: bool = Field(
        default=True,
        description="Send the morning briefing while watching",
    )

    @field_validator("briefing_time")
    @classmethod
    def validate_briefing_time(cls, v: str) -> str:
        if not _HHMM.match(v.strip()):
            raise ValueError(f"briefing_time must be HH:MM, got {v!r}")
        return v.strip()

    @property
    def briefing_hour_minute(self) -> tuple[int, int]:
        hour, minute = self.briefing_time.split(":")
        return int(hour), int(minute)
