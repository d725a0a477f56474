"""Per-source watcher state: the last article URL seen and when."""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from fxwatch.storage.json_store import JsonDocumentStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class SourceState(BaseModel):
    """What the watcher last processed for one source."""

    model_config = ConfigDict(populate_by_name=True)

    last_article_url: str | None = Field(default=None, alias="lastArticleUrl")
    last_check: datetime = Field(default_factory=_utc_now, alias="lastCheck")


class WatcherStateRepository:
    """
    Watcher state persisted as ``{source_id: {lastArticleUrl, lastCheck}}``.

    Only successful processing writes here, so a failed article is
    retried on the next cycle.
    """

    def __init__(self, store: JsonDocumentStore) -> None:
        self._store = store
        self._states: dict[str, SourceState] = {}
        for source_id, record in self._store.load().items():
            if isinstance(record, dict):
                self._states[source_id] = SourceState.model_validate(record)

    def get(self, source_id: str) -> SourceState | None:
        return self._states.get(source_id)

    def last_url(self, source_id: str) -> str | None:
        state = self._states.get(source_id)
        return state.last_article_url if state else None

    def mark_processed(self, source_id: str, url: str, when: datetime | None = None) -> SourceState:
        state = SourceState(last_article_url=url, last_check=when or _utc_now())
        self._states[source_id] = state
        self._save()
        logger.debug("State saved for %s: %s", source_id, url)
        return state

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return {
            sid: s.model_dump(mode="json", by_alias=True)
            for sid, s in self._states.items()
        }

    def _save(self) -> None:
        self._store.save(self.as_dict())
