"""Configuration for the article summarizer.

Provides Pydantic settings for the LLM API key, endpoint, model selection,
content limits and circuit breaker tuning. All settings can be overridden
via SUMMARIZER_* environment variables; the key is also read from
GROQ_API_KEY.
"""

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SummarizerConfig(BaseSettings):
    """Configuration for LLM summarization.

    Any OpenAI-compatible chat-completion endpoint works; Groq is the default.

    Example:
        GROQ_API_KEY=gsk_...
        SUMMARIZER_MODEL=llama-3.1-8b-instant
    """

    model_config = SettingsConfigDict(
        env_prefix="SUMMARIZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("SUMMARIZER_API_KEY", "GROQ_API_KEY"),
        description="API key for the chat-completion endpoint",
    )
    base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI-compatible API base URL",
    )
    model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Chat model used for summaries, briefings and answers",
    )
    temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=2.0,
    )

    # Article text beyond this is cut before prompting
    max_content_chars: int = Field(
        default=25000,
        ge=1000,
        description="Maximum article characters sent to the model",
    )

    # Circuit breaker settings
    circuit_failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive failures before opening circuit",
    )
    circuit_recovery_timeout: float = Field(
        default=300.0,
        ge=5.0,
        description="Seconds before attempting recovery probe",
    )

    # LLM request timeout
    llm_timeout: float = Field(
        default=60.0,
        ge=5.0,
        le=300.0,
        description="Timeout in seconds for LLM API calls",
    )

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())
