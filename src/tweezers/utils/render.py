"""Plain-text formatting for hunk listings and history."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from ..core.model import Hunk, HunkInfo
from ..memory.schema import HistoryEntry

DEFAULT_MAX_LINES = 120


def hunk_label(info: HunkInfo) -> str:
    """Return ``[index|id] header (+a -d) | summary`` for one hunk."""
    counts: List[str] = []
    if info.stats.additions:
        counts.append(f"+{info.stats.additions}")
    if info.stats.deletions:
        counts.append(f"-{info.stats.deletions}")
    label = f"[{info.index}|{info.id}] {info.header}"
    if counts:
        label = f"{label} ({' '.join(counts)})"
    if info.summary:
        label = f"{label} | {info.summary}"
    return label


def render_hunk_body(hunk: Hunk, *, max_lines: int = DEFAULT_MAX_LINES) -> List[str]:
    lines = hunk.lines()
    if len(lines) > max_lines:
        return [*lines[:max_lines], "... (truncated)"]
    return lines


def render_listing(path: str, hunks: Sequence[HunkInfo], *, precise: bool, inline: bool = False) -> List[str]:
    """Render the hunk listing for ``path``."""
    if not hunks:
        return [f"No changes in {path}"]
    mode = "precise" if precise else "normal"
    lines = [f"Hunks in {path} ({mode} mode):"]
    for info in hunks:
        lines.append(hunk_label(info))
        if inline:
            lines.extend(f"    {body}" for body in render_hunk_body(info.hunk))
    return lines


def render_history(entries: Iterable[HistoryEntry]) -> List[str]:
    """Render ``[n] <local time> - <description>`` lines, most recent first."""
    lines: List[str] = []
    for position, entry in enumerate(entries):
        when = entry.applied_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        lines.append(f"[{position}] {when} - {entry.description or 'No description'}")
    return lines or ["No staging history available."]


__all__ = ["hunk_label", "render_history", "render_hunk_body", "render_listing"]
