"""History repository backed by a JSON document.

Entries are kept most-recent-first, deduplicated by exact URL and capped
at MAX_ENTRIES; inserting beyond the cap evicts the oldest entry.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any

from fxwatch.history.schemas import HistoryEntry
from fxwatch.ingestion.schemas import ArticleContent
from fxwatch.storage.json_store import JsonDocumentStore
from fxwatch.summarization.schemas import ArticleSummary

logger = logging.getLogger(__name__)

MAX_ENTRIES = 1000


def _record_to_entry(record: dict[str, Any]) -> HistoryEntry:
    return HistoryEntry.model_validate(record)


def _entry_to_record(entry: HistoryEntry) -> dict[str, Any]:
    return entry.model_dump(mode="json", by_alias=True)


class HistoryRepository:
    """Append-only log of processed articles.

    Provides add, search and time/source filtered reads used by the
    CLI, the bot, the morning briefing and question answering.
    """

    def __init__(self, store: JsonDocumentStore, max_entries: int = MAX_ENTRIES) -> None:
        self._store = store
        self._max_entries = max_entries
        self._entries: list[HistoryEntry] = [
            _record_to_entry(r) for r in self._store.load()
        ]

    def _save(self) -> None:
        self._store.save([_entry_to_record(e) for e in self._entries])

    def __len__(self) -> int:
        return len(self._entries)

    def contains(self, url: str) -> bool:
        return any(e.url == url for e in self._entries)

    def add_article(
        self,
        article: ArticleContent,
        summary: ArticleSummary,
        source_id: str,
        source_name: str | None = None,
    ) -> HistoryEntry | None:
        """Record a processed article.

        Args:
            article: Extracted article (its URL is the dedup key).
            summary: Summary providing title, tags and key takeaway.
            source_id: Registered source id.
            source_name: Display name of the source.

        Returns:
            The new entry, or None when the URL was already recorded.
        """
        if self.contains(article.url):
            logger.debug("Already in history: %s", article.url)
            return None

        entry = HistoryEntry(
            id=str(time.time_ns() // 1_000_000),
            url=article.url,
            title=summary.title or article.title,
            tags=list(summary.tags),
            key_takeaway=summary.key_takeaway,
            source=source_id,
            source_name=source_name or article.site_name or source_id,
        )

        self._entries.insert(0, entry)
        evicted = len(self._entries) - self._max_entries
        if evicted > 0:
            del self._entries[self._max_entries:]

        self._save()
        logger.info("Saved to history: %r [%s]", entry.title, ", ".join(entry.tags))
        return entry

    def search(self, query: str) -> list[HistoryEntry]:
        """Entries whose title or any tag contains ``query`` (any case), newest first."""
        return [e for e in self._entries if e.matches(query)]

    def all(self) -> list[HistoryEntry]:
        return list(self._entries)

    def recent(self, hours: int = 24, now: datetime | None = None) -> list[HistoryEntry]:
        """Entries recorded within the last ``hours`` hours."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=hours)
        return [e for e in self._entries if e.date >= cutoff]

    def for_sources(self, source_ids: list[str]) -> list[HistoryEntry]:
        """Entries from any of ``source_ids``, newest first."""
        wanted = set(source_ids)
        return [e for e in self._entries if e.source in wanted]
