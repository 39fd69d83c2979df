"""Persisted hunk-id cache and staging history."""

from .schema import CURRENT_VERSION, CacheDocument, HistoryEntry, HunkRecord, utc_now
from .store import CacheStore, InMemoryStore, JsonFileStore, load_document, save_document

__all__ = [
    "CURRENT_VERSION",
    "CacheDocument",
    "CacheStore",
    "HistoryEntry",
    "HunkRecord",
    "InMemoryStore",
    "JsonFileStore",
    "load_document",
    "save_document",
    "utc_now",
]
