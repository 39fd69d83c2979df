"""Stable short ids for hunks plus the bounded staging history."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar, Union

from ..core.hunk_id import MIN_ID_LENGTH, content_fingerprint, short_id
from ..core.model import Hunk, HunkInfo
from ..memory.schema import CacheDocument, HistoryEntry, HunkRecord, utc_now
from ..memory.store import CacheStore, load_document, save_document

DEFAULT_RETENTION = timedelta(days=7)
DEFAULT_HISTORY_LIMIT = 20
LOGGER = logging.getLogger(__name__)

_Selectable = TypeVar("_Selectable", Hunk, HunkInfo)


class HunkCache:
    """Fingerprint to id mapping with time-based eviction, and the undo log.

    Mutations stay in memory until :meth:`save` is called, so a dry run can
    use the cache without persisting anything.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        retention: timedelta = DEFAULT_RETENTION,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self.store = store
        self.clock = clock
        self.retention = retention
        self.history_limit = history_limit
        self.document: CacheDocument = load_document(store)

    # ------------------------------------------------------------------ ids
    def tracked_ids(self) -> set[str]:
        return set(self.document.ids)

    def assign_id(self, fingerprint: str, *, now: datetime | None = None) -> str:
        """Return the id for ``fingerprint``, minting one when it is unknown."""
        seen_at = now or self.clock()
        known = self.document.fingerprints.get(fingerprint)
        if known is not None and known in self.document.ids:
            self.document.ids[known].last_seen_at = seen_at
            return known

        hunk_id = short_id(fingerprint, self.tracked_ids())
        if len(hunk_id) > MIN_ID_LENGTH:
            LOGGER.debug("Extended hunk id to %s to avoid a collision.", hunk_id)
        self.document.fingerprints[fingerprint] = hunk_id
        self.document.ids[hunk_id] = HunkRecord(fingerprint=fingerprint, last_seen_at=seen_at)
        return hunk_id

    def map_hunks(self, file_path: str, hunks: Iterable[Hunk]) -> List[Hunk]:
        """Return ``hunks`` with ids taken from, or recorded in, the cache."""
        now = self.clock()
        mapped: List[Hunk] = []
        for hunk in hunks:
            fingerprint = hunk.fingerprint or content_fingerprint(hunk, file_path)
            hunk_id = self.assign_id(fingerprint, now=now)
            mapped.append(replace(hunk, id=hunk_id, fingerprint=fingerprint))
        return mapped

    @staticmethod
    def find_hunk(hunks: Sequence[_Selectable], selector: Union[str, int]) -> Optional[_Selectable]:
        """Resolve ``selector`` against the current listing.

        Integers match the volatile ``index``. Strings match an exact id first
        and only then fall back to an integer index, so an id that looks like
        a number still wins.
        """
        if isinstance(selector, int):
            return next((hunk for hunk in hunks if hunk.index == selector), None)

        text = selector.strip()
        for hunk in hunks:
            if hunk.id == text:
                return hunk
        if text.isascii() and text.isdigit():
            number = int(text)
            return next((hunk for hunk in hunks if hunk.index == number), None)
        return None

    # ---------------------------------------------------------- persistence
    def prune(self, *, now: datetime | None = None) -> int:
        """Drop ids not seen within the retention window from both maps."""
        cutoff = (now or self.clock()) - self.retention
        expired = [hunk_id for hunk_id, record in self.document.ids.items() if record.last_seen_at < cutoff]
        for hunk_id in expired:
            record = self.document.ids.pop(hunk_id)
            if self.document.fingerprints.get(record.fingerprint) == hunk_id:
                del self.document.fingerprints[record.fingerprint]
        orphans = [
            fingerprint
            for fingerprint, hunk_id in self.document.fingerprints.items()
            if hunk_id not in self.document.ids
        ]
        for fingerprint in orphans:
            del self.document.fingerprints[fingerprint]
        if expired:
            LOGGER.debug("Pruned %d expired hunk ids.", len(expired))
        return len(expired)

    def save(self) -> None:
        self.prune()
        save_document(self.store, self.document)

    def clear(self) -> None:
        """Forget every id and the whole history."""
        self.document = CacheDocument()
        save_document(self.store, self.document)

    # -------------------------------------------------------------- history
    def add_history(
        self,
        patch: str,
        *,
        files: Iterable[str],
        selectors: Iterable[Union[str, int]] = (),
        description: str | None = None,
        apply_options: Iterable[str] = ("--cached",),
    ) -> HistoryEntry:
        """Record an applied patch as the most recent history entry."""
        applied_at = self.clock()
        entry = HistoryEntry(
            id=applied_at.isoformat(),
            applied_at=applied_at,
            patch=patch,
            files=list(files),
            selectors=[str(item) for item in selectors],
            description=description,
            apply_options=list(apply_options),
        )
        self.document.history.insert(0, entry)
        del self.document.history[self.history_limit:]
        return entry

    def history(self) -> List[HistoryEntry]:
        return list(self.document.history)

    def history_entry(self, step: int) -> Optional[HistoryEntry]:
        """Return the entry ``step`` positions back (0 is the most recent)."""
        if 0 <= step < len(self.document.history):
            return self.document.history[step]
        return None

    def remove_history_entry(self, step: int) -> Optional[HistoryEntry]:
        if 0 <= step < len(self.document.history):
            return self.document.history.pop(step)
        return None


__all__ = ["DEFAULT_HISTORY_LIMIT", "DEFAULT_RETENTION", "HunkCache"]
