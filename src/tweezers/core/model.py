"""Structural model of a unified diff: files, hunks and line changes."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Tuple

NO_NEWLINE_MARKER = "\\ No newline at end of file"


class ChangeKind(str, Enum):
    """Role a line plays inside a hunk."""

    ADDED = "added"
    DELETED = "deleted"
    UNCHANGED = "unchanged"

    @property
    def prefix(self) -> str:
        if self is ChangeKind.ADDED:
            return "+"
        if self is ChangeKind.DELETED:
            return "-"
        return " "

    @classmethod
    def from_prefix(cls, prefix: str) -> "ChangeKind":
        if prefix == "+":
            return cls.ADDED
        if prefix == "-":
            return cls.DELETED
        if prefix in {" ", ""}:
            return cls.UNCHANGED
        raise ValueError(f"Unknown diff line prefix: {prefix!r}")


@dataclass(frozen=True, slots=True)
class Change:
    """Single line of a hunk.

    ``ordinal`` is the zero-based position of the change inside its hunk and is
    the key used for selection; two changes with equal content stay distinct.
    ``has_newline`` is ``False`` only for the last physical line of a file side
    that lacks a trailing newline.
    """

    kind: ChangeKind
    content: str
    has_newline: bool = True
    ordinal: int = 0

    @property
    def prefix(self) -> str:
        return self.kind.prefix

    @property
    def is_change(self) -> bool:
        return self.kind is not ChangeKind.UNCHANGED

    def render(self) -> str:
        return f"{self.prefix}{self.content}"


def count_lines(changes: Iterable[Change]) -> Tuple[int, int]:
    """Return ``(old_count, new_count)`` for a change sequence."""
    old_count = 0
    new_count = 0
    for change in changes:
        if change.kind is ChangeKind.DELETED:
            old_count += 1
        elif change.kind is ChangeKind.ADDED:
            new_count += 1
        else:
            old_count += 1
            new_count += 1
    return old_count, new_count


def format_header(old_start: int, old_count: int, new_start: int, new_count: int) -> str:
    return f"@@ -{old_start},{old_count} +{new_start},{new_count} @@"


@dataclass(slots=True)
class Hunk:
    """Contiguous block of changes with its ``@@`` coordinates.

    ``index`` is the 1-based position inside the current diff snapshot and
    shifts whenever an earlier hunk is staged. ``id`` is derived from the
    content fingerprint and survives re-listing.
    """

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    changes: Tuple[Change, ...] = ()
    index: int = 0
    id: str = ""
    fingerprint: str = ""

    @property
    def header(self) -> str:
        return format_header(self.old_start, self.old_count, self.new_start, self.new_count)

    def lines(self) -> list[str]:
        """Return the prefixed body lines without no-newline markers."""
        return [change.render() for change in self.changes]

    def with_id(self, hunk_id: str) -> "Hunk":
        return replace(self, id=hunk_id)


def build_hunk(old_start: int, new_start: int, changes: Iterable[Change], *, index: int = 0) -> Hunk:
    """Create a hunk whose counts and change ordinals are derived from ``changes``."""
    numbered = tuple(replace(change, ordinal=position) for position, change in enumerate(changes))
    old_count, new_count = count_lines(numbered)
    return Hunk(
        old_start=old_start,
        old_count=old_count,
        new_start=new_start,
        new_count=new_count,
        changes=numbered,
        index=index,
    )


@dataclass(slots=True)
class HunkStats:
    additions: int = 0
    deletions: int = 0


@dataclass(slots=True)
class HunkInfo:
    """Hunk enriched with a human-facing summary and change counts."""

    hunk: Hunk
    summary: str = ""
    stats: HunkStats = field(default_factory=HunkStats)

    @property
    def id(self) -> str:
        return self.hunk.id

    @property
    def index(self) -> int:
        return self.hunk.index

    @property
    def header(self) -> str:
        return self.hunk.header


@dataclass(slots=True)
class FileDiff:
    """All hunks for one file. ``old_path`` differs from ``new_path`` only for renames."""

    old_path: str
    new_path: str
    hunks: list[Hunk] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.new_path

    @property
    def is_rename(self) -> bool:
        return self.old_path != self.new_path

    def matches(self, path: str) -> bool:
        return path in {self.old_path, self.new_path}

    def with_hunks(self, hunks: Iterable[Hunk]) -> "FileDiff":
        return replace(self, hunks=list(hunks))


__all__ = [
    "NO_NEWLINE_MARKER",
    "Change",
    "ChangeKind",
    "FileDiff",
    "Hunk",
    "HunkInfo",
    "HunkStats",
    "build_hunk",
    "count_lines",
    "format_header",
]
