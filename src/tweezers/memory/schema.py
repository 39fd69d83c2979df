"""Typed records persisted in the per-repository cache document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

CURRENT_VERSION = 2
DEFAULT_APPLY_OPTIONS = ("--cached",)


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=False)


class HunkRecord(RecordModel):
    """Reverse mapping entry for a minted hunk id."""

    fingerprint: str
    last_seen_at: datetime = Field(default_factory=utc_now)


class HistoryEntry(RecordModel):
    """Patch applied to the index, kept so it can be reverse-applied later."""

    id: str
    applied_at: datetime = Field(default_factory=utc_now)
    patch: str
    files: List[str] = Field(default_factory=list)
    selectors: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    apply_options: List[str] = Field(default_factory=lambda: list(DEFAULT_APPLY_OPTIONS))


class CacheDocument(RecordModel):
    """Whole persisted document: id maps plus the newest-first history."""

    version: int = CURRENT_VERSION
    fingerprints: Dict[str, str] = Field(default_factory=dict)
    ids: Dict[str, HunkRecord] = Field(default_factory=dict)
    history: List[HistoryEntry] = Field(default_factory=list)


__all__ = [
    "CURRENT_VERSION",
    "CacheDocument",
    "DEFAULT_APPLY_OPTIONS",
    "HistoryEntry",
    "HunkRecord",
    "RecordModel",
    "utc_now",
]
