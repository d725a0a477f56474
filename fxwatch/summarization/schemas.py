"""
Summary schemas.

Summaries are written for French-speaking traders, so sentiment values and
generated text are French; field names stay English.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fxwatch.economics.schemas import EconomicEvent


class Sentiment(str, Enum):
    """Directional view on a currency."""

    BULLISH = "haussier"
    BEARISH = "baissier"
    NEUTRAL = "neutre"

    @property
    def emoji(self) -> str:
        return {
            Sentiment.BULLISH: "📈",
            Sentiment.BEARISH: "📉",
            Sentiment.NEUTRAL: "➡️",
        }[self]

    @classmethod
    def parse(cls, value: Any) -> "Sentiment":
        """Lenient parse of LLM output ("Haussier", "bullish", ...)."""
        text = str(value or "").strip().lower()
        if text in ("haussier", "bullish", "positive", "positif"):
            return cls.BULLISH
        if text in ("baissier", "bearish", "negative", "négatif", "negatif"):
            return cls.BEARISH
        return cls.NEUTRAL


class CurrencySection(BaseModel):
    """Per-currency part of a summary."""

    sentiment: Sentiment = Sentiment.NEUTRAL
    summary: str = ""
    factors: list[str] = Field(default_factory=list)
    events: list[EconomicEvent] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def parse_sentiment(cls, v: Any) -> Sentiment:
        return v if isinstance(v, Sentiment) else Sentiment.parse(v)

    @field_validator("factors", mode="before")
    @classmethod
    def coerce_factors(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(f) for f in v]


class ArticleSummary(BaseModel):
    """
    Structured summary of one article.

    Produced by the LLM client, or by the extractive fallback when the LLM
    is unavailable (``is_fallback=True``).
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str
    introduction: str = ""
    currencies: dict[str, CurrencySection] = Field(default_factory=dict)
    conclusion: str = ""
    key_takeaway: str = Field(default="", alias="keyTakeaway")
    mentioned_currencies: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    is_fallback: bool = False

    @field_validator("currencies", mode="before")
    @classmethod
    def uppercase_codes(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(code).upper(): section for code, section in v.items()}
        return v or {}

    @property
    def currency_codes(self) -> list[str]:
        """Summarized currencies first, then any other mentioned ones."""
        codes = list(self.currencies)
        codes.extend(c for c in self.mentioned_currencies if c not in self.currencies)
        return codes
