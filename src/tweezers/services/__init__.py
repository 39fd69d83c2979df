"""Hunk cache and staging orchestration."""

from .hunk_cache import HunkCache
from .staging import ChangeListing, FileListing, StagingResult, StagingService

__all__ = ["ChangeListing", "FileListing", "HunkCache", "StagingResult", "StagingService"]
