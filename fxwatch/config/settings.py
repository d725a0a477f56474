"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ConfigError(Exception):
    """Raised when a feature is invoked without its required credentials."""


class Settings(BaseSettings):
    """
    Central configuration for the fx-news-watch application.

    All settings can be overridden via environment variables.
    Feature-specific settings live next to their module (WATCHER_*,
    SUMMARIZER_*, CALENDAR_*, TELEGRAM_*, EMAIL_*).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # Persisted documents (watcher state, history, users)
    data_dir: Path = Field(default=Path("."))
    watcher_state_file: str = ".watcher-state.json"
    history_file: str = "history.json"
    users_file: str = "users.json"

    # HTML previews of every processed newsletter (disabled when unset)
    output_dir: Path | None = None

    # Wall-clock settings for calendar filtering and the daily briefing
    timezone: str = "Europe/Paris"

    # HTTP transport
    user_agent: str = DEFAULT_USER_AGENT
    http_timeout_seconds: float = Field(default=15.0, gt=0.0, le=120.0)
    max_http_retries: int = Field(default=2, ge=0, le=10)
    max_backoff_seconds: float = Field(default=30.0, ge=1.0, le=300.0)

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def watcher_state_path(self) -> Path:
        return self.data_dir / self.watcher_state_file

    @property
    def history_path(self) -> Path:
        return self.data_dir / self.history_file

    @property
    def users_path(self) -> Path:
        return self.data_dir / self.users_file


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
