"""Content-addressed identity for hunks.

A fingerprint hashes the file path, up to three context lines on either side
of the changed block, and the changed lines themselves *by content only*. The
add/delete framing is left out so the same logical edit hashes identically
whether it shows up as an addition or is presented differently after part of
the hunk was staged.
"""

from __future__ import annotations

import hashlib
import re
from typing import AbstractSet, Sequence

from .model import Change, ChangeKind, Hunk, HunkInfo, HunkStats

CONTEXT_WINDOW = 3
MIN_ID_LENGTH = 4
SUMMARY_LENGTH = 50

_TRAILING_WHITESPACE = re.compile(r"\s+$")


def normalise_line(line: str) -> str:
    """Strip carriage returns, turn tabs into single spaces and trim the right edge."""
    cleaned = line.replace("\r", "").replace("\t", " ")
    return _TRAILING_WHITESPACE.sub("", cleaned)


def _split_context(changes: Sequence[Change]) -> tuple[list[str], list[Change], list[str]]:
    before: list[str] = []
    after: list[str] = []
    actual: list[Change] = []
    first_index: int | None = None
    last_index = -1

    for position, change in enumerate(changes):
        if not change.is_change:
            continue
        if first_index is None:
            first_index = position
            for candidate in changes[max(0, position - CONTEXT_WINDOW):position]:
                if candidate.kind is ChangeKind.UNCHANGED:
                    before.append(candidate.content)
        actual.append(change)
        last_index = position

    if last_index >= 0:
        for candidate in changes[last_index + 1:last_index + 1 + CONTEXT_WINDOW]:
            if candidate.kind is ChangeKind.UNCHANGED:
                after.append(candidate.content)

    return before, actual, after


def content_fingerprint(hunk: Hunk | Sequence[Change], file_path: str) -> str:
    """Return the hex SHA-256 fingerprint for ``hunk`` within ``file_path``."""
    changes = hunk.changes if isinstance(hunk, Hunk) else tuple(hunk)
    digest = hashlib.sha256()
    digest.update(f"{file_path}\n".encode("utf-8"))

    before, actual, after = _split_context(changes)
    for line in before:
        digest.update(f"{normalise_line(line)}\n".encode("utf-8"))
    for change in actual:
        digest.update(f"{normalise_line(change.content)}\n".encode("utf-8"))
    for line in after:
        digest.update(f"{normalise_line(line)}\n".encode("utf-8"))

    return digest.hexdigest()


def short_id(fingerprint: str, existing: AbstractSet[str] | None = None) -> str:
    """Return the shortest prefix (at least four characters) not in ``existing``."""
    length = MIN_ID_LENGTH
    candidate = fingerprint[:length]
    taken = existing or set()
    while candidate in taken and length < len(fingerprint):
        length += 1
        candidate = fingerprint[:length]
    return candidate


def hunk_summary(hunk: Hunk) -> str:
    """First non-blank changed line, truncated for listings."""
    for change in hunk.changes:
        if not change.is_change:
            continue
        text = change.content.strip()
        if not text:
            continue
        if len(text) > SUMMARY_LENGTH:
            return f"{text[:SUMMARY_LENGTH]}..."
        return text
    return ""


def hunk_stats(hunk: Hunk) -> HunkStats:
    stats = HunkStats()
    for change in hunk.changes:
        if change.kind is ChangeKind.ADDED:
            stats.additions += 1
        elif change.kind is ChangeKind.DELETED:
            stats.deletions += 1
    return stats


def describe_hunk(hunk: Hunk) -> HunkInfo:
    return HunkInfo(hunk=hunk, summary=hunk_summary(hunk), stats=hunk_stats(hunk))


__all__ = [
    "CONTEXT_WINDOW",
    "MIN_ID_LENGTH",
    "content_fingerprint",
    "describe_hunk",
    "hunk_stats",
    "hunk_summary",
    "normalise_line",
    "short_id",
]
