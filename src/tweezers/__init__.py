"""Non-interactive partial staging of hunks and lines for git."""

from .config import TweezersConfig, load_config
from .core import Change, ChangeKind, DiffParser, FileDiff, Hunk, HunkInfo, LineMapper, PatchBuilder
from .errors import (
    ApplyFailure,
    BinaryFileError,
    CacheError,
    ConfigError,
    NoChangesError,
    ParseError,
    RangeError,
    SelectorNotFound,
    TweezersError,
    UndoFailure,
)
from .services import HunkCache, StagingResult, StagingService

__version__ = "0.1.0"

__all__ = [
    "ApplyFailure",
    "BinaryFileError",
    "CacheError",
    "Change",
    "ChangeKind",
    "ConfigError",
    "DiffParser",
    "FileDiff",
    "Hunk",
    "HunkCache",
    "HunkInfo",
    "LineMapper",
    "NoChangesError",
    "ParseError",
    "PatchBuilder",
    "RangeError",
    "SelectorNotFound",
    "StagingResult",
    "StagingService",
    "TweezersConfig",
    "TweezersError",
    "UndoFailure",
    "load_config",
]
