"""
Schemas produced by source adapters.

LatestItem is created fresh on every fetch and never persisted directly;
the watcher only keeps its URL.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class SourceKind(str, Enum):
    """How the pipeline should obtain article text for a source."""

    # Detailed per-currency breakdown, full page is extracted
    FX_DAILY = "fx_daily"
    # Headline feed, the adapter snippet is enough
    GENERAL_NEWS = "general_news"


class LatestItem(BaseModel):
    """The most recent item a source currently exposes."""

    url: str = Field(..., min_length=1, description="Absolute article URL")
    title: str = Field(..., description="Article headline")
    description: str | None = Field(
        default=None,
        description="Short snippet taken from the listing or feed",
    )
    published_time: datetime | None = Field(default=None)

    @field_validator("url")
    @classmethod
    def url_must_be_absolute(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must be absolute: {v!r}")
        return v

    @field_validator("title", "description")
    @classmethod
    def collapse_whitespace(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return " ".join(v.split())


class ArticleContent(BaseModel):
    """Full article text handed to the summarizer."""

    url: str
    title: str
    content: str = ""
    site_name: str | None = None
    published_time: datetime | None = None

    @property
    def word_count(self) -> int:
        return len(self.content.split())
