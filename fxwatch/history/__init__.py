"""Processed-article history."""

from fxwatch.history.repository import MAX_ENTRIES, HistoryRepository
from fxwatch.history.schemas import HistoryEntry

__all__ = ["HistoryEntry", "HistoryRepository", "MAX_ENTRIES"]
