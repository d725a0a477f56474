"""Data models for users and their source subscriptions."""

import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_TAG_SEPARATORS = re.compile(r"[,\s]+")


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def normalize_tag(tag: str) -> str | None:
    """Strip a tag and prefix it with ``#`` (``"usd"`` -> ``"#usd"``).

    Casing is kept; returns None for blank input.
    """
    tag = tag.strip().strip(",")
    if not tag or tag == "#":
        return None
    return tag if tag.startswith("#") else f"#{tag}"


def merge_tags(existing: list[str], new: list[str]) -> list[str]:
    """Append ``new`` tags not already present (case-insensitive), keeping first-seen casing."""
    merged = list(existing)
    seen = {t.lower() for t in merged}
    for tag in new:
        normalized = normalize_tag(tag)
        if normalized and normalized.lower() not in seen:
            merged.append(normalized)
            seen.add(normalized.lower())
    return merged


def parse_tags(text: str | list[str] | None) -> list[str]:
    """Parse user input like ``"usd, #EUR gbp"`` into normalized, de-duplicated tags."""
    if text is None:
        return []
    parts = text if isinstance(text, list) else _TAG_SEPARATORS.split(text)
    return merge_tags([], parts)


class Subscription(BaseModel):
    """One user's interest in one source.

    An empty ``tags`` list means every article from the source.
    """

    source: str
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def migrate_single_tag(cls, data: Any) -> Any:
        # Older records stored a single optional ``tag``
        if isinstance(data, dict) and "tag" in data and "tags" not in data:
            data = dict(data)
            tag = data.pop("tag")
            data["tags"] = [tag] if tag else []
        return data

    @property
    def is_all_content(self) -> bool:
        return not self.tags

    def matches(self, article_tags: list[str]) -> bool:
        """True if this subscription wants an article carrying ``article_tags``."""
        if self.is_all_content:
            return True
        wanted = {t.lower() for t in self.tags}
        return any(t.lower() in wanted for t in article_tags)


class User(BaseModel):
    """A bot user (Telegram chat id) and their subscriptions."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    joined_at: datetime = Field(default_factory=_utc_now, alias="joinedAt")
    subscriptions: list[Subscription] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        # Telegram chat ids arrive as ints
        return str(v)

    def subscription_for(self, source_id: str) -> Subscription | None:
        for sub in self.subscriptions:
            if sub.source == source_id:
                return sub
        return None

    @property
    def source_ids(self) -> list[str]:
        return [sub.source for sub in self.subscriptions]
