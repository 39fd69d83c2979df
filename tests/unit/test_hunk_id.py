from __future__ import annotations

from tweezers.core.hunk_id import (
    content_fingerprint,
    describe_hunk,
    hunk_summary,
    normalise_line,
    short_id,
)
from tweezers.core.model import Change, ChangeKind, build_hunk

ADDED = ChangeKind.ADDED
DELETED = ChangeKind.DELETED
UNCHANGED = ChangeKind.UNCHANGED


def test_normalise_line_strips_cr_tabs_and_trailing_space() -> None:
    assert normalise_line("\tvalue = 1  \r") == " value = 1"
    assert normalise_line("plain") == "plain"


def test_fingerprint_is_deterministic() -> None:
    changes = [Change(UNCHANGED, "ctx"), Change(ADDED, "new"), Change(UNCHANGED, "tail")]

    first = content_fingerprint(build_hunk(1, 1, changes), "a.py")
    second = content_fingerprint(build_hunk(1, 1, list(changes)), "a.py")

    assert first == second
    assert len(first) == 64


def test_fingerprint_depends_on_path_but_not_position() -> None:
    changes = [Change(UNCHANGED, "ctx"), Change(ADDED, "new")]

    here = content_fingerprint(build_hunk(1, 1, changes, index=1), "a.py")
    moved = content_fingerprint(build_hunk(40, 42, changes, index=7), "a.py")
    elsewhere = content_fingerprint(build_hunk(1, 1, changes), "b.py")

    assert here == moved
    assert here != elsewhere


def test_fingerprint_ignores_change_framing() -> None:
    unstaged = build_hunk(1, 1, [Change(UNCHANGED, "before"), Change(ADDED, "x"), Change(UNCHANGED, "after")])
    reframed = build_hunk(1, 1, [Change(UNCHANGED, "before"), Change(DELETED, "x"), Change(UNCHANGED, "after")])

    assert content_fingerprint(unstaged, "f.txt") == content_fingerprint(reframed, "f.txt")


def test_fingerprint_uses_at_most_three_context_lines_each_side() -> None:
    narrow = [
        Change(UNCHANGED, "c2"),
        Change(UNCHANGED, "c3"),
        Change(UNCHANGED, "c4"),
        Change(ADDED, "x"),
        Change(UNCHANGED, "d1"),
        Change(UNCHANGED, "d2"),
        Change(UNCHANGED, "d3"),
    ]
    wide = [Change(UNCHANGED, "c1"), *narrow, Change(UNCHANGED, "d4")]

    assert content_fingerprint(narrow, "f.txt") == content_fingerprint(wide, "f.txt")


def test_fingerprint_ignores_whitespace_noise() -> None:
    clean = [Change(UNCHANGED, "ctx"), Change(ADDED, "value = 1")]
    noisy = [Change(UNCHANGED, "ctx\r"), Change(ADDED, "value = 1 \t")]

    assert content_fingerprint(clean, "f.txt") == content_fingerprint(noisy, "f.txt")


def test_short_id_extends_until_unique() -> None:
    fingerprint = "abcdef0123456789"

    assert short_id(fingerprint) == "abcd"
    assert short_id(fingerprint, {"abcd"}) == "abcde"
    assert short_id(fingerprint, {"abcd", "abcde"}) == "abcdef"


def test_summary_uses_first_non_blank_change_and_truncates() -> None:
    long_line = "x" * 60
    hunk = build_hunk(
        1,
        1,
        [Change(UNCHANGED, "context"), Change(ADDED, "   "), Change(ADDED, f"  {long_line}")],
    )

    assert hunk_summary(hunk) == f"{'x' * 50}..."
    assert hunk_summary(build_hunk(1, 1, [Change(ADDED, "  short  ")])) == "short"


def test_describe_hunk_counts_additions_and_deletions() -> None:
    hunk = build_hunk(
        1,
        1,
        [Change(DELETED, "a"), Change(DELETED, "b"), Change(ADDED, "c"), Change(UNCHANGED, "d")],
    )

    info = describe_hunk(hunk)

    assert (info.stats.additions, info.stats.deletions) == (1, 2)
    assert info.summary == "a"
    assert info.header == "@@ -1,3 +1,2 @@"
