"""Source watcher - poll loop, per-source state and the briefing schedule."""

from fxwatch.watcher.config import WatcherConfig
from fxwatch.watcher.service import CheckReport, WatcherService, next_briefing_at
from fxwatch.watcher.state import SourceState, WatcherStateRepository

__all__ = [
    "CheckReport",
    "SourceState",
    "WatcherConfig",
    "WatcherService",
    "WatcherStateRepository",
    "next_briefing_at",
]
