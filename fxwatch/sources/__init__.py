"""Source registry and the default source catalog."""

from fxwatch.sources.catalog import build_default_registry
from fxwatch.sources.registry import DuplicateSourceError, SourceNotFound, SourceRegistry
from fxwatch.sources.schemas import Source, SourceInfo

__all__ = [
    "DuplicateSourceError",
    "Source",
    "SourceInfo",
    "SourceNotFound",
    "SourceRegistry",
    "build_default_registry",
]
