"""Map new-file line numbers onto hunk changes."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .model import Change, ChangeKind, Hunk

LOGGER = logging.getLogger(__name__)


class LineMapper:
    """Resolve line selections into the changes a valid partial patch needs."""

    @staticmethod
    def map_new_lines(hunk: Hunk) -> Dict[int, Change]:
        """Return ``{new_line_number: change}`` for context and added lines.

        Deleted lines only exist in the old numbering and take no slot.
        """
        mapping: Dict[int, Change] = {}
        new_line = hunk.new_start
        for change in hunk.changes:
            if change.kind is ChangeKind.DELETED:
                continue
            mapping[new_line] = change
            new_line += 1
        return mapping

    @staticmethod
    def eof_fix_pair(hunk: Hunk, change: Change) -> tuple[Change, Change] | None:
        """Return the ``(deleted, added)`` pair that re-terminates a former last line.

        The pattern is a deleted line without a trailing newline immediately
        followed by an added line with identical content, both directly before
        ``change``. Staging ``change`` without the pair would leave the old
        last line unterminated while content is appended after it.
        """
        position = change.ordinal
        if position < 2:
            return None
        deleted = hunk.changes[position - 2]
        added = hunk.changes[position - 1]
        if (
            deleted.kind is ChangeKind.DELETED
            and not deleted.has_newline
            and added.kind is ChangeKind.ADDED
            and added.has_newline
            and added.content == deleted.content
        ):
            return deleted, added
        return None

    @classmethod
    def required_changes(cls, hunk: Hunk, target_lines: Iterable[int]) -> List[Change]:
        """Return the changes needed to stage ``target_lines``, in hunk order."""
        mapping = cls.map_new_lines(hunk)
        required: set[int] = set()

        for line_number in target_lines:
            change = mapping.get(line_number)
            if change is None or change.kind is not ChangeKind.ADDED:
                continue
            required.add(change.ordinal)
            pair = cls.eof_fix_pair(hunk, change)
            if pair is not None:
                LOGGER.debug(
                    "Line %d requires the end-of-file fix for %r; including the delete/add pair.",
                    line_number,
                    pair[0].content,
                )
                required.update(item.ordinal for item in pair)

        return [change for change in hunk.changes if change.ordinal in required]


__all__ = ["LineMapper"]
