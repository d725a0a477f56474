"""Economic calendar configuration.

All settings can be overridden via ``CALENDAR_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CalendarConfig(BaseSettings):
    """Configuration for the weekly economic calendar feed."""

    model_config = SettingsConfigDict(
        env_prefix="CALENDAR_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    feed_url: str = Field(
        default="https://nfs.faireconomy.media/ff_calendar_thisweek.xml",
        description="ForexFactory weekly calendar export (XML)",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=60.0,
        description="Request timeout for the calendar feed",
    )
    impacts: list[str] = Field(
        default=["High", "Medium"],
        description="Impact levels kept; lower-impact releases are dropped",
    )
