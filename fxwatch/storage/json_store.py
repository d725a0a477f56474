"""
JSON document storage.

Each persisted collection (watcher state, history, users) is one JSON file.
Writes go to a temporary file in the same directory which then replaces the
target, so a crash mid-write never leaves a truncated document behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a document cannot be read or written."""


class JsonDocumentStore:
    """
    Load/save a single JSON document with atomic replacement.

    A missing file reads as ``default``; a corrupt file is logged and also
    reads as ``default`` so the watcher can start from scratch instead of
    refusing to run.

    Usage:
        store = JsonDocumentStore(Path("history.json"), default=list)
        entries = store.load()
        store.save(entries)
    """

    def __init__(self, path: Path, default: type[list] | type[dict] = dict) -> None:
        self.path = Path(path)
        self._default = default

    def load(self) -> Any:
        if not self.path.exists():
            return self._default()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Corrupt JSON in %s, starting empty: %s", self.path, e)
            return self._default()
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

        if not isinstance(data, self._default):
            logger.error(
                "Unexpected %s in %s (wanted %s), starting empty",
                type(data).__name__,
                self.path,
                self._default.__name__,
            )
            return self._default()
        return data

    def save(self, data: Any) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2, default=str)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e
