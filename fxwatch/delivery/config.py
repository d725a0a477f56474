"""Delivery channel configuration.

Telegram settings use ``TELEGRAM_*`` environment variables; email settings
use ``EMAIL_*``. Missing credentials only matter when the channel is used.
"""

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelegramConfig(BaseSettings):
    """Configuration for the Telegram bot (outbound messages and inbound commands)."""

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    bot_token: SecretStr | None = Field(
        default=None,
        description="Bot token from @BotFather",
    )
    api_base: str = Field(
        default="https://api.telegram.org",
        description="Bot API base URL",
    )
    timeout_seconds: float = Field(default=15.0, gt=0.0, le=120.0)
    poll_timeout_seconds: int = Field(
        default=30,
        ge=0,
        le=50,
        description="Long-poll timeout for getUpdates",
    )
    conversation_timeout_seconds: float = Field(
        default=300.0,
        ge=10.0,
        description="Seconds before a pending tag prompt is abandoned",
    )

    @property
    def is_configured(self) -> bool:
        return self.bot_token is not None and bool(self.bot_token.get_secret_value())


class EmailConfig(BaseSettings):
    """Configuration for the newsletter email (Resend API first, SMTP fallback)."""

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    recipients: str = Field(
        default="",
        validation_alias=AliasChoices("EMAIL_RECIPIENTS", "EMAIL_TO"),
        description="Comma-separated newsletter addresses",
    )

    # Resend HTTP API
    resend_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_RESEND_API_KEY", "RESEND_API_KEY"),
    )
    resend_from: str = Field(
        default="FX Newsletter <onboarding@resend.dev>",
        validation_alias=AliasChoices("EMAIL_RESEND_FROM", "RESEND_FROM"),
    )
    resend_api_url: str = "https://api.resend.com/emails"

    # SMTP fallback
    smtp_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_SMTP_HOST", "SMTP_HOST"),
    )
    smtp_port: int = Field(
        default=587,
        validation_alias=AliasChoices("EMAIL_SMTP_PORT", "SMTP_PORT"),
    )
    smtp_user: str | None = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_SMTP_USER", "SMTP_USER"),
    )
    smtp_password: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_SMTP_PASSWORD", "SMTP_PASSWORD"),
    )
    smtp_from: str | None = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_FROM", "EMAIL_SMTP_FROM"),
    )
    timeout_seconds: float = Field(default=20.0, gt=0.0, le=120.0)

    @property
    def recipient_list(self) -> list[str]:
        return [a.strip() for a in self.recipients.split(",") if a.strip()]

    @property
    def resend_configured(self) -> bool:
        return self.resend_api_key is not None and bool(self.resend_api_key.get_secret_value())

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)
