"""History entry schema."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    """One processed article, as kept for search, briefings and questions."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    date: datetime = Field(default_factory=_utc_now)
    url: str
    title: str
    tags: list[str] = Field(default_factory=list)
    key_takeaway: str = Field(default="", alias="keyTakeaway")
    source: str
    source_name: str = Field(default="", alias="sourceName")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Older entries may lack an offset
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on the title or any tag."""
        q = query.lower()
        return q in self.title.lower() or any(q in t.lower() for t in self.tags)
