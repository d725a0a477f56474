"""Storage layer - atomic JSON documents."""

from fxwatch.storage.json_store import JsonDocumentStore, StorageError

__all__ = ["JsonDocumentStore", "StorageError"]
