"""Parse ``git diff`` output into :class:`FileDiff` / :class:`Hunk` / :class:`Change`."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from ..errors import BinaryFileError, ParseError, TweezersError
from .hunk_id import content_fingerprint, short_id
from .model import NO_NEWLINE_MARKER, Change, ChangeKind, FileDiff, Hunk

LOGGER = logging.getLogger(__name__)

_DIFF_HEADER = re.compile(r"^diff --git (?P<left>\"?a/.+?\"?) (?P<right>\"?b/.+\"?)$")
_HUNK_HEADER = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@"
)
_BINARY_DIFFERS = re.compile(r"^Binary files (?P<left>.+) and (?P<right>.+) differ$")
_EXTENDED_HEADERS = (
    "index ",
    "old mode ",
    "new mode ",
    "deleted file mode ",
    "new file mode ",
    "similarity index ",
    "dissimilarity index ",
    "rename from ",
    "rename to ",
    "copy from ",
    "copy to ",
)


def _default_count(value: str | None) -> int:
    """Return the number of lines represented in a hunk header."""
    return int(value) if value is not None else 1


def _unquote(value: str) -> str:
    """Decode git's C-style quoting of unusual paths."""
    if len(value) < 2 or not (value.startswith('"') and value.endswith('"')):
        return value
    inner = value[1:-1]
    try:
        return inner.encode("latin-1", errors="backslashreplace").decode("unicode_escape").encode("latin-1").decode("utf-8")
    except (UnicodeDecodeError, UnicodeEncodeError):
        return inner


def _normalise_diff_path(entry: str) -> str | None:
    """Translate ``---``/``+++``/header operands into repository-relative paths."""
    value = _unquote(entry.split("\t", 1)[0].strip())
    if value == "/dev/null":
        return None
    if value.startswith(("a/", "b/")):
        value = value[2:]
    return value or None


def _is_binary_marker(line: str) -> bool:
    return line == "GIT binary patch" or _BINARY_DIFFERS.match(line) is not None


def _is_no_newline_marker(line: str) -> bool:
    return line == NO_NEWLINE_MARKER


def ensure_text_diff(diff_text: str, *, path: str | None = None) -> None:
    """Raise :class:`BinaryFileError` when ``diff_text`` describes a binary change."""
    for line in diff_text.split("\n"):
        if _is_binary_marker(line):
            raise BinaryFileError(path or _binary_path(line))


def _binary_path(line: str) -> str | None:
    match = _BINARY_DIFFERS.match(line)
    if not match:
        return None
    return _normalise_diff_path(match.group("right")) or _normalise_diff_path(match.group("left"))


def analyse_eol(lines: Sequence[str]) -> List[bool]:
    """Return one end-of-line flag per content line, in diff order.

    The scan runs over the raw lines without building any structure: hunk
    headers only reset the remaining old/new counters so that file headers
    between hunks are never mistaken for content. A content line is flagged
    ``False`` when the next raw line is the no-newline marker; the marker
    itself is consumed.
    """
    flags: List[bool] = []
    old_left = 0
    new_left = 0
    index = 0
    total = len(lines)
    while index < total:
        line = lines[index]
        if old_left <= 0 and new_left <= 0:
            match = _HUNK_HEADER.match(line)
            if match:
                old_left = _default_count(match.group("old_count"))
                new_left = _default_count(match.group("new_count"))
            index += 1
            continue
        if line.startswith("\\"):
            index += 1
            continue

        prefix = line[:1]
        if prefix == "+":
            new_left -= 1
        elif prefix == "-":
            old_left -= 1
        else:
            old_left -= 1
            new_left -= 1

        following = lines[index + 1] if index + 1 < total else None
        if following is not None and _is_no_newline_marker(following):
            flags.append(False)
            index += 2
            continue
        flags.append(True)
        index += 1
    return flags


def _split_sections(lines: Sequence[str]) -> list[tuple[int, int]]:
    """Identify line ranges corresponding to individual ``diff --git`` sections."""
    starts = [index for index, line in enumerate(lines) if line.startswith("diff --git ")]
    if not starts:
        return [(0, len(lines))] if lines else []
    sections: list[tuple[int, int]] = []
    if starts[0] > 0 and any(line.strip() for line in lines[: starts[0]]):
        sections.append((0, starts[0]))
    for position, start in enumerate(starts):
        end = starts[position + 1] if position + 1 < len(starts) else len(lines)
        sections.append((start, end))
    return sections


@dataclass(slots=True)
class _FileState:
    """Mutable accumulator for one file while its section is parsed."""

    old_path: str | None = None
    new_path: str | None = None
    saw_paths: bool = False
    renamed_from: str | None = None
    renamed_to: str | None = None
    hunks: list[Hunk] = field(default_factory=list)

    @property
    def display_path(self) -> str | None:
        return self.new_path or self.old_path

    def finish(self) -> FileDiff:
        old_path = self.renamed_from or self.old_path or self.new_path
        new_path = self.renamed_to or self.new_path or self.old_path
        if old_path is None or new_path is None:
            raise ParseError("Diff section does not name a file.")
        hunks: list[Hunk] = []
        for position, hunk in enumerate(self.hunks, start=1):
            fingerprint = content_fingerprint(hunk, new_path)
            hunk.index = position
            hunk.fingerprint = fingerprint
            hunk.id = short_id(fingerprint)
            hunks.append(hunk)
        return FileDiff(old_path=old_path, new_path=new_path, hunks=hunks)


def _parse_section(lines: Sequence[str]) -> list[FileDiff]:
    """Parse one section; plain unified diffs may hold several files."""
    eol_flags = analyse_eol(lines)
    eol_position = 0
    states: list[_FileState] = []
    current: _FileState | None = None
    index = 0
    total = len(lines)

    while index < total:
        line = lines[index]

        if line.startswith("diff --git "):
            current = _FileState()
            match = _DIFF_HEADER.match(line)
            if match:
                current.old_path = _normalise_diff_path(match.group("left"))
                current.new_path = _normalise_diff_path(match.group("right"))
            states.append(current)
            index += 1
            continue

        if line.startswith("--- ") and index + 1 < total and lines[index + 1].startswith("+++ "):
            if current is None or current.saw_paths or current.hunks:
                current = _FileState()
                states.append(current)
            old_path = _normalise_diff_path(line[4:])
            new_path = _normalise_diff_path(lines[index + 1][4:])
            current.old_path = old_path or new_path
            current.new_path = new_path or old_path
            current.saw_paths = True
            index += 2
            continue

        if line.startswith("@@"):
            if current is None:
                raise ParseError("Hunk found outside of a file section.", line=line)
            hunk, index, eol_position = _parse_hunk(lines, index, eol_flags, eol_position, current.display_path)
            current.hunks.append(hunk)
            continue

        if _is_binary_marker(line):
            raise BinaryFileError(current.display_path if current else _binary_path(line))

        if current is not None and line.startswith(_EXTENDED_HEADERS):
            if line.startswith("rename from "):
                current.renamed_from = _unquote(line[len("rename from "):].strip())
            elif line.startswith("rename to "):
                current.renamed_to = _unquote(line[len("rename to "):].strip())
            index += 1
            continue

        if not line.strip():
            index += 1
            continue

        path = current.display_path if current else None
        raise ParseError(f"Unrecognised diff line: {line!r}", path=path, line=line)

    if eol_position != len(eol_flags):
        raise ParseError(
            f"End-of-line scan found {len(eol_flags)} content lines but {eol_position} were parsed.",
            path=states[-1].display_path if states else None,
        )
    return [state.finish() for state in states]


def _parse_hunk(
    lines: Sequence[str],
    start: int,
    eol_flags: Sequence[bool],
    eol_position: int,
    path: str | None,
) -> Tuple[Hunk, int, int]:
    header = lines[start]
    match = _HUNK_HEADER.match(header)
    if not match:
        raise ParseError(f"Malformed hunk header: {header}", path=path, line=header)

    old_count = _default_count(match.group("old_count"))
    new_count = _default_count(match.group("new_count"))
    old_left = old_count
    new_left = new_count
    changes: list[Change] = []

    index = start + 1
    while index < len(lines) and (old_left > 0 or new_left > 0):
        body = lines[index]
        if body.startswith("\\"):
            index += 1
            continue
        try:
            kind = ChangeKind.from_prefix(body[:1])
        except ValueError:
            raise ParseError(f"Unexpected line in hunk body: {body!r}", path=path, line=body) from None
        if kind is ChangeKind.ADDED:
            new_left -= 1
        elif kind is ChangeKind.DELETED:
            old_left -= 1
        else:
            old_left -= 1
            new_left -= 1
        if eol_position >= len(eol_flags):
            raise ParseError("Hunk body is out of step with the end-of-line scan.", path=path, line=body)
        changes.append(
            Change(
                kind=kind,
                content=body[1:],
                has_newline=eol_flags[eol_position],
                ordinal=len(changes),
            )
        )
        eol_position += 1
        index += 1

    if old_left != 0 or new_left != 0:
        raise ParseError(
            f"Hunk body does not match header counts for {header}",
            path=path,
            line=header,
        )

    while index < len(lines) and lines[index].startswith("\\"):
        index += 1

    hunk = Hunk(
        old_start=int(match.group("old_start")),
        old_count=old_count,
        new_start=int(match.group("new_start")),
        new_count=new_count,
        changes=tuple(changes),
    )
    return hunk, index, eol_position


class DiffParser:
    """Turn raw unified-diff text into the structural model."""

    def parse(self, diff_text: str) -> list[FileDiff]:
        """Parse every file in ``diff_text``; the first failure is raised."""
        ensure_text_diff(diff_text)
        files, failures = self._parse(diff_text)
        if failures:
            raise failures[0]
        return files

    def parse_lenient(self, diff_text: str) -> tuple[list[FileDiff], list[TweezersError]]:
        """Parse ``diff_text`` skipping files that fail, and report the failures."""
        return self._parse(diff_text)

    def _parse(self, diff_text: str) -> tuple[list[FileDiff], list[TweezersError]]:
        lines = diff_text.split("\n")
        files: list[FileDiff] = []
        failures: list[TweezersError] = []
        for start, end in _split_sections(lines):
            section = lines[start:end]
            try:
                files.extend(_parse_section(section))
            except (ParseError, BinaryFileError) as error:
                LOGGER.debug("Skipping diff section starting %r: %s", section[0] if section else "", error)
                failures.append(error)
        return files, failures

    def find_file(self, files: Iterable[FileDiff], path: str) -> FileDiff | None:
        for file in files:
            if file.matches(path):
                return file
        return None

    def hunk_count(self, diff_text: str) -> int:
        return sum(len(file.hunks) for file in self.parse(diff_text))

    def file_hunk_count(self, diff_text: str, path: str) -> int:
        file = self.find_file(self.parse(diff_text), path)
        return len(file.hunks) if file else 0


__all__ = ["DiffParser", "analyse_eol", "ensure_text_diff"]
