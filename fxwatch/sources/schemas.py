"""Data models for the sources module."""

from dataclasses import dataclass

from fxwatch.ingestion.base_adapter import SourceAdapter
from fxwatch.ingestion.schemas import SourceKind


@dataclass(frozen=True)
class Source:
    """A registered news origin and the adapter that reads it.

    Immutable once registered; ``id`` is the key used by watcher state,
    subscriptions and history.
    """

    id: str
    name: str
    kind: SourceKind
    adapter: SourceAdapter


@dataclass(frozen=True)
class SourceInfo:
    """Public description of a source (no adapter)."""

    id: str
    name: str
    kind: SourceKind
