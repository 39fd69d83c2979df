from __future__ import annotations

from datetime import datetime, timezone

from tweezers.core.hunk_id import describe_hunk
from tweezers.core.model import Change, ChangeKind, build_hunk
from tweezers.memory.schema import HistoryEntry
from tweezers.utils.render import hunk_label, render_history, render_hunk_body, render_listing


def _info(*changes: Change, index: int = 1, hunk_id: str = "a3f7"):
    return describe_hunk(build_hunk(3, 3, changes, index=index).with_id(hunk_id))


def test_hunk_label_shows_index_id_counts_and_summary() -> None:
    info = _info(
        Change(ChangeKind.UNCHANGED, "keep"),
        Change(ChangeKind.DELETED, "old()"),
        Change(ChangeKind.ADDED, "new()"),
        Change(ChangeKind.ADDED, "more()"),
    )

    assert hunk_label(info) == "[1|a3f7] @@ -3,2 +3,3 @@ (+2 -1) | old()"


def test_hunk_label_omits_zero_counts() -> None:
    info = _info(Change(ChangeKind.ADDED, "only"), index=2, hunk_id="0b1c")

    assert hunk_label(info) == "[2|0b1c] @@ -3,0 +3,1 @@ (+1) | only"


def test_render_listing_modes_and_inline_bodies() -> None:
    info = _info(Change(ChangeKind.ADDED, "line"))

    assert render_listing("a.py", [], precise=False) == ["No changes in a.py"]
    assert render_listing("a.py", [info], precise=True)[0] == "Hunks in a.py (precise mode):"
    inline = render_listing("a.py", [info], precise=False, inline=True)
    assert inline[0] == "Hunks in a.py (normal mode):"
    assert inline[2:] == ["    +line"]


def test_render_hunk_body_truncates_long_hunks() -> None:
    hunk = build_hunk(1, 1, [Change(ChangeKind.ADDED, str(number)) for number in range(5)])

    assert render_hunk_body(hunk, max_lines=3) == ["+0", "+1", "+2", "... (truncated)"]
    assert len(render_hunk_body(hunk)) == 5


def test_render_history_numbers_entries_from_most_recent() -> None:
    when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    entries = [
        HistoryEntry(id="b", applied_at=when, patch="p", description="Staged hunk(s) 1 from a.py"),
        HistoryEntry(id="a", applied_at=when, patch="p"),
    ]
    local = when.astimezone().strftime("%Y-%m-%d %H:%M:%S")

    assert render_history(entries) == [
        f"[0] {local} - Staged hunk(s) 1 from a.py",
        f"[1] {local} - No description",
    ]
    assert render_history([]) == ["No staging history available."]
