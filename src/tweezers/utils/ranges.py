"""Parsing helpers for ``file:selector`` arguments and line range specs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from ..errors import RangeError

_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:")
_NUMBER = re.compile(r"^\d+$")


@dataclass(frozen=True, slots=True)
class LineRange:
    """Inclusive, 1-based range of new-file line numbers."""

    start: int
    end: int

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def __str__(self) -> str:
        return str(self.start) if self.start == self.end else f"{self.start}-{self.end}"


def _line_number(text: str, part: str) -> int:
    if not _NUMBER.match(text):
        raise RangeError(f"Invalid line number in range: {part}")
    value = int(text)
    if value < 1:
        raise RangeError(f"Line numbers must be positive: {part}")
    return value


def parse_line_ranges(spec: str) -> List[LineRange]:
    """Parse ``"10-15,20,25-30"`` into sorted, non-overlapping ranges."""
    ranges: List[LineRange] = []
    for raw_part in spec.split(","):
        part = raw_part.strip()
        if not part:
            continue
        if "-" in part:
            start_text, _, end_text = part.partition("-")
            start_text = start_text.strip()
            end_text = end_text.strip()
            if not start_text or not end_text:
                raise RangeError(f"Invalid range format: {part}")
            start = _line_number(start_text, part)
            end = _line_number(end_text, part)
            if start > end:
                raise RangeError(f"Invalid range: start line ({start}) is greater than end line ({end})")
            ranges.append(LineRange(start, end))
        else:
            line = _line_number(part, part)
            ranges.append(LineRange(line, line))

    if not ranges:
        raise RangeError("No valid ranges found")

    ranges.sort(key=lambda item: item.start)
    for previous, current in zip(ranges, ranges[1:]):
        if current.start <= previous.end:
            raise RangeError(f"Overlapping ranges: {previous} and {current}")
    return ranges


def format_ranges(ranges: Iterable[LineRange]) -> str:
    return ", ".join(str(item) for item in ranges)


def expand_ranges(ranges: Iterable[LineRange]) -> List[int]:
    """Return every line number covered by ``ranges`` in ascending order."""
    return sorted({line for item in ranges for line in item})


def parse_file_selector(value: str) -> Tuple[str, Optional[str]]:
    """Split ``path:selector`` on the last colon.

    A Windows drive prefix such as ``C:`` is never treated as the separator and
    an empty selector counts as none.
    """
    colon = value.rfind(":")
    if colon == -1:
        return value, None
    if colon == 1 and _WINDOWS_DRIVE.match(value):
        return value, None
    path = value[:colon]
    selector = value[colon + 1:]
    if not selector.strip():
        return path, None
    return path, selector.strip()


def split_selectors(selector: str) -> List[str]:
    """Split a comma-separated selector list, dropping blanks."""
    return [item.strip() for item in selector.split(",") if item.strip()]


__all__ = [
    "LineRange",
    "expand_ranges",
    "format_ranges",
    "parse_file_selector",
    "parse_line_ranges",
    "split_selectors",
]
