"""Error taxonomy shared by the parser, builder, cache and staging service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:
    from .core.model import HunkInfo
    from .memory.schema import HistoryEntry


class TweezersError(RuntimeError):
    """Base class for every error raised by git-tweezers."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class ParseError(TweezersError):
    """Raised for a malformed hunk header or unrecognised diff framing."""

    def __init__(self, message: str, *, path: str | None = None, line: str | None = None) -> None:
        super().__init__(message, details={"path": path, "line": line})
        self.path = path
        self.line = line


class BinaryFileError(TweezersError):
    """Raised when a binary change is detected before structural parsing."""

    def __init__(self, path: str | None, *, action: str = "process") -> None:
        target = path or "<unknown>"
        super().__init__(f"Cannot {action} binary file: {target}", details={"path": path})
        self.path = path


class SelectorNotFound(TweezersError):
    """Raised when a hunk index or id does not resolve against the current listing.

    The full listing is attached so callers can present alternatives without
    re-running the diff.
    """

    def __init__(self, selector: str | int, *, path: str, hunks: Sequence["HunkInfo"]) -> None:
        super().__init__(
            f"Hunk '{selector}' not found in {path}",
            details={"selector": str(selector), "path": path},
        )
        self.selector = selector
        self.path = path
        self.hunks: list["HunkInfo"] = list(hunks)


class RangeError(TweezersError):
    """Raised when line numbers, indices or history steps fall outside valid bounds."""


class NoChangesError(TweezersError):
    """Raised when a file has no unstaged changes to select from."""


class ApplyFailure(TweezersError):
    """Raised when ``git apply`` rejects a generated patch."""

    def __init__(self, message: str, *, patch: str, options: Sequence[str] = ()) -> None:
        super().__init__(message, details={"options": list(options)})
        self.patch = patch
        self.options = tuple(options)


class UndoFailure(TweezersError):
    """Raised when reverse-applying a history entry fails; the entry is kept."""

    def __init__(self, message: str, *, entry: "HistoryEntry") -> None:
        super().__init__(message, details={"entry_id": entry.id})
        self.entry = entry


class ConfigError(TweezersError):
    """Raised when the configuration file cannot be parsed."""


class CacheError(TweezersError):
    """Raised when the persisted cache document cannot be used safely."""


__all__ = [
    "ApplyFailure",
    "BinaryFileError",
    "CacheError",
    "ConfigError",
    "NoChangesError",
    "ParseError",
    "RangeError",
    "SelectorNotFound",
    "TweezersError",
    "UndoFailure",
]
