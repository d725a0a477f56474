"""Registry of named sources, built once at startup."""

import logging
from collections.abc import Iterator

from fxwatch.sources.schemas import Source, SourceInfo

logger = logging.getLogger(__name__)


class SourceNotFound(KeyError):
    """Raised when looking up an id that was never registered."""

    def __init__(self, source_id: str, available: list[str]):
        self.source_id = source_id
        self.available = available
        super().__init__(source_id)

    def __str__(self) -> str:
        return (
            f"Source '{self.source_id}' not found. "
            f"Available: {', '.join(self.available) or '(none)'}"
        )


class DuplicateSourceError(ValueError):
    """Raised when registering an id that is already taken."""


class SourceRegistry:
    """Named source adapters, iterated in registration order.

    The watcher, bot and CLI share one instance. Adding a source means
    registering another adapter; nothing else changes.
    """

    def __init__(self, sources: list[Source] | None = None) -> None:
        self._sources: dict[str, Source] = {}
        for source in sources or []:
            self.register(source)

    def register(self, source: Source) -> None:
        """Add a source; ids are unique and never overwritten."""
        if not source.id or not source.id.strip():
            raise ValueError("Source id must be a non-empty string")
        if source.id in self._sources:
            raise DuplicateSourceError(f"Source '{source.id}' is already registered")
        self._sources[source.id] = source
        logger.debug("Registered source %s (%s)", source.id, source.kind.value)

    def get(self, source_id: str) -> Source:
        try:
            return self._sources[source_id]
        except KeyError:
            raise SourceNotFound(source_id, list(self._sources)) from None

    @property
    def ids(self) -> list[str]:
        return list(self._sources)

    def list(self) -> list[SourceInfo]:
        return [SourceInfo(id=s.id, name=s.name, kind=s.kind) for s in self._sources.values()]

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[Source]:
        return iter(list(self._sources.values()))
