"""Diff model, parser, line mapping, patch rebuilding and hunk identity."""

from .hunk_id import content_fingerprint, describe_hunk, normalise_line, short_id
from .line_mapper import LineMapper
from .model import NO_NEWLINE_MARKER, Change, ChangeKind, FileDiff, Hunk, HunkInfo, HunkStats, build_hunk
from .parser import DiffParser, analyse_eol, ensure_text_diff
from .patch_builder import PatchBuilder

__all__ = [
    "NO_NEWLINE_MARKER",
    "Change",
    "ChangeKind",
    "DiffParser",
    "FileDiff",
    "Hunk",
    "HunkInfo",
    "HunkStats",
    "LineMapper",
    "PatchBuilder",
    "analyse_eol",
    "build_hunk",
    "content_fingerprint",
    "describe_hunk",
    "ensure_text_diff",
    "normalise_line",
    "short_id",
]
