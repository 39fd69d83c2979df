"""Rebuild partial hunks and serialise them into patches ``git apply`` accepts."""

from __future__ import annotations

from dataclasses import replace
from typing import AbstractSet, Iterable, List, Mapping, Sequence

from .model import NO_NEWLINE_MARKER, Change, ChangeKind, FileDiff, Hunk, build_hunk

PLACEHOLDER_INDEX = "index 0000000..0000000 100644"


class PatchBuilder:
    """Turn a selection of changes back into valid unified-diff text."""

    @staticmethod
    def rebuild_hunk(hunk: Hunk, selected: Iterable[Change | int]) -> Hunk:
        """Return a hunk that applies only ``selected`` changes of ``hunk``.

        ``selected`` holds changes or their ordinals. Unselected additions are
        dropped and unselected deletions are kept as context, so the hunk still
        starts at the original ``old_start``/``new_start`` and only the counts
        change.
        """
        ordinals: AbstractSet[int] = {
            item.ordinal if isinstance(item, Change) else int(item) for item in selected
        }
        retained: List[Change] = []
        for change in hunk.changes:
            if change.ordinal in ordinals or change.kind is ChangeKind.UNCHANGED:
                retained.append(change)
            elif change.kind is ChangeKind.DELETED:
                retained.append(replace(change, kind=ChangeKind.UNCHANGED))

        rebuilt = build_hunk(hunk.old_start, hunk.new_start, retained, index=hunk.index)
        rebuilt.id = hunk.id
        rebuilt.fingerprint = hunk.fingerprint
        return rebuilt

    @classmethod
    def rebuild_hunks(
        cls,
        hunks: Sequence[Hunk],
        selections: Mapping[int, Iterable[Change | int]],
    ) -> List[Hunk]:
        """Rebuild the hunks of one file named in ``selections`` (keyed by ``index``).

        Hunks without a selection are left out. Each kept hunk's ``new_start``
        moves by the net lines no longer added or removed ahead of it, so the
        partial patch stays self-consistent for reverse application.
        """
        rebuilt: List[Hunk] = []
        shift = 0
        for hunk in hunks:
            original_delta = hunk.new_count - hunk.old_count
            selected = selections.get(hunk.index)
            if selected is None:
                shift -= original_delta
                continue
            partial = cls.rebuild_hunk(hunk, selected)
            partial.new_start += shift
            shift += (partial.new_count - partial.old_count) - original_delta
            rebuilt.append(partial)
        return rebuilt

    @staticmethod
    def render_hunk(hunk: Hunk) -> List[str]:
        """Serialise ``hunk`` as its header plus body lines with no-newline markers."""
        lines = [hunk.header]
        changes = hunk.changes
        for position, change in enumerate(changes):
            lines.append(change.render())
            if change.has_newline:
                continue
            following = changes[position + 1] if position + 1 < len(changes) else None
            if following is None or following.kind is not ChangeKind.UNCHANGED:
                lines.append(NO_NEWLINE_MARKER)
        return lines

    @staticmethod
    def file_header(file: FileDiff) -> List[str]:
        lines = [f"diff --git a/{file.old_path} b/{file.new_path}"]
        if file.is_rename:
            lines.append(f"rename from {file.old_path}")
            lines.append(f"rename to {file.new_path}")
        lines.append(PLACEHOLDER_INDEX)
        lines.append(f"--- a/{file.old_path}")
        lines.append(f"+++ b/{file.new_path}")
        return lines

    @classmethod
    def build_patch(cls, files: Sequence[FileDiff]) -> str:
        """Concatenate ``files`` into one patch; files without hunks are skipped."""
        lines: List[str] = []
        for file in files:
            if not file.hunks:
                continue
            lines.extend(cls.file_header(file))
            for hunk in file.hunks:
                lines.extend(cls.render_hunk(hunk))
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    @classmethod
    def build_file_patch(cls, file: FileDiff, hunks: Iterable[Hunk]) -> str:
        return cls.build_patch([file.with_hunks(hunks)])

    @classmethod
    def build_line_patch(cls, file: FileDiff, hunk: Hunk, selected: Iterable[Change | int]) -> str:
        """Build the patch staging ``selected`` changes of a single hunk."""
        return cls.build_file_patch(file, [cls.rebuild_hunk(hunk, selected)])


__all__ = ["PLACEHOLDER_INDEX", "PatchBuilder"]
