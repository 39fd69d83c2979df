"""Compose parsing, id mapping, selection and patch application per operation."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import TweezersConfig
from ..core.hunk_id import describe_hunk
from ..core.line_mapper import LineMapper
from ..core.model import Change, FileDiff, Hunk, HunkInfo
from ..core.parser import DiffParser
from ..core.patch_builder import PatchBuilder
from ..errors import (
    ApplyFailure,
    BinaryFileError,
    NoChangesError,
    ParseError,
    RangeError,
    SelectorNotFound,
    TweezersError,
    UndoFailure,
)
from ..memory.schema import HistoryEntry
from ..memory.store import JsonFileStore
from ..tools.vcs import GitError, GitRepository
from ..utils.ranges import LineRange, expand_ranges, format_ranges, parse_line_ranges
from ..utils.telemetry import emit_event
from .hunk_cache import HunkCache

Selector = Union[str, int]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class StagingResult:
    """Outcome of a staging or undo operation."""

    patch: str
    files: List[str]
    selectors: List[str] = field(default_factory=list)
    options: Tuple[str, ...] = ()
    description: str = ""
    dry_run: bool = False
    entry: Optional[HistoryEntry] = None


@dataclass(slots=True)
class FileListing:
    path: str
    hunks: List[HunkInfo] = field(default_factory=list)


@dataclass(slots=True)
class ChangeListing:
    """Hunks for every changed file, plus files skipped because they failed."""

    files: List[FileListing] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)


class StagingService:
    """Run list, stage-hunk, stage-lines and undo against one repository."""

    def __init__(
        self,
        repo: GitRepository,
        cache: HunkCache,
        config: TweezersConfig | None = None,
        *,
        parser: DiffParser | None = None,
    ) -> None:
        self.repo = repo
        self.cache = cache
        self.config = config or TweezersConfig()
        self.parser = parser or DiffParser()
        self._registered: List[str] = []

    @classmethod
    def open(cls, repo: GitRepository, config: TweezersConfig | None = None) -> "StagingService":
        """Build a service whose cache lives in the repository's git directory."""
        settings = config or TweezersConfig()
        store = JsonFileStore(repo.git_dir() / settings.cache_file)
        cache = HunkCache(
            store,
            retention=timedelta(days=settings.retention_days),
            history_limit=settings.history_limit,
        )
        return cls(repo, cache, settings)

    # ------------------------------------------------------------- loading
    def _read_diff(self, path: str, *, context: int, action: str) -> str:
        untracked = self.repo.is_untracked(path)
        if self.repo.is_binary(path, untracked=untracked):
            raise BinaryFileError(path, action=action)
        if not untracked:
            return self.repo.diff(path, context=context)
        if self.config.dry_run:
            return self.repo.diff_untracked(path, context=context)
        LOGGER.debug("Registering untracked file %s with intent-to-add.", path)
        self.repo.add_intent_to_add(path)
        self._registered.append(path)
        return self.repo.diff(path, context=context)

    @contextmanager
    def _staging_attempt(self) -> Iterator[None]:
        """Undo intent-to-add registrations made by a staging call that fails."""
        self._registered = []
        try:
            yield
        except (TweezersError, GitError):
            for path in reversed(self._registered):
                LOGGER.debug("Removing intent-to-add entry for %s after a failed staging.", path)
                try:
                    self.repo.remove_intent_to_add(path)
                except GitError as error:
                    LOGGER.warning("Could not remove intent-to-add entry for %s: %s", path, error)
            raise
        finally:
            self._registered = []

    def _load_file(self, path: str, *, context: int, action: str = "process") -> Optional[FileDiff]:
        diff_text = self._read_diff(path, context=context, action=action)
        if not diff_text.strip():
            return None
        files = self.parser.parse(diff_text)
        file = self.parser.find_file(files, path)
        if file is None:
            return None
        return file.with_hunks(self.cache.map_hunks(file.new_path, file.hunks))

    def _persist(self) -> None:
        if not self.config.dry_run:
            self.cache.save()

    # ------------------------------------------------------------- listing
    def list_hunks(self, path: str) -> List[HunkInfo]:
        """Return the hunks of ``path`` at the configured context width."""
        file = self._load_file(path, context=self.config.context_width, action="list hunks for")
        self._persist()
        if file is None:
            return []
        return [describe_hunk(hunk) for hunk in file.hunks]

    def list_changes(self) -> ChangeListing:
        """List hunks for every changed file, skipping files that fail to parse."""
        listing = ChangeListing()
        for path in self.repo.changed_files():
            try:
                file = self._load_file(path, context=self.config.context_width, action="list hunks for")
            except (ParseError, BinaryFileError) as error:
                LOGGER.warning("Skipping %s: %s", path, error)
                listing.skipped[path] = str(error)
                continue
            if file is None or not file.hunks:
                continue
            listing.files.append(FileListing(path=path, hunks=[describe_hunk(hunk) for hunk in file.hunks]))
        self._persist()
        return listing

    def hunk_count(self, path: str) -> int:
        return len(self.list_hunks(path))

    # ------------------------------------------------------------- staging
    def stage_hunk(self, path: str, selector: Selector, *, description: str | None = None) -> StagingResult:
        return self.stage_hunks({path: [selector]}, description=description)

    def stage_hunks(
        self,
        selection: Mapping[str, Sequence[Selector]],
        *,
        description: str | None = None,
    ) -> StagingResult:
        """Stage the selected hunks of every file in one ``git apply`` call."""
        with self._staging_attempt():
            context = self.config.context_width
            files: List[FileDiff] = []
            selectors: List[str] = []
            summaries: List[str] = []

            for path, requested in selection.items():
                file = self._load_file(path, context=context, action="stage hunks for")
                if file is None or not file.hunks:
                    raise NoChangesError(f"No changes found for file: {path}", details={"path": path})
                chosen = self._resolve(path, file.hunks, requested)
                hunks = PatchBuilder.rebuild_hunks(
                    file.hunks,
                    {hunk.index: [change.ordinal for change in hunk.changes] for hunk in chosen},
                )
                files.append(file.with_hunks(hunks))
                labels = [str(item) for item in requested]
                selectors.extend(labels)
                noun = "hunk" if len(labels) == 1 else "hunks"
                summaries.append(f"{noun} {', '.join(labels)} from {path}")

            options: Tuple[str, ...] = ("--cached", "--unidiff-zero") if context == 0 else ("--cached",)
            patch = PatchBuilder.build_patch(files)
            return self._apply(
                patch,
                files=[file.path for file in files],
                selectors=selectors,
                options=options,
                description=description or f"Staged {'; '.join(summaries)}",
            )

    def _resolve(self, path: str, hunks: Sequence[Hunk], requested: Sequence[Selector]) -> List[Hunk]:
        chosen: Dict[int, Hunk] = {}
        for selector in requested:
            if isinstance(selector, int) and selector < 1:
                raise RangeError(f"Hunk index must be at least 1 (got {selector})", details={"path": path})
            if isinstance(selector, int) and selector > len(hunks):
                raise RangeError(
                    f"Hunk index {selector} out of range (1-{len(hunks)})", details={"path": path}
                )
            hunk = self.cache.find_hunk(hunks, selector)
            if hunk is None:
                raise SelectorNotFound(selector, path=path, hunks=[describe_hunk(item) for item in hunks])
            chosen[hunk.index] = hunk
        return [chosen[index] for index in sorted(chosen)]

    def stage_lines(
        self,
        path: str,
        ranges: Union[str, Sequence[LineRange]],
        *,
        description: str | None = None,
    ) -> StagingResult:
        """Stage the added lines at the given new-file line numbers of ``path``."""
        line_ranges = parse_line_ranges(ranges) if isinstance(ranges, str) else list(ranges)
        if not line_ranges:
            raise RangeError("No line ranges given.", details={"path": path})
        with self._staging_attempt():
            context = self.config.lines_context
            file = self._load_file(path, context=context, action="stage lines for")
            if file is None or not file.hunks:
                raise NoChangesError(f"No changes found for file: {path}", details={"path": path})

            targets = expand_ranges(line_ranges)
            covered = False
            selections: Dict[int, List[Change]] = {}
            for hunk in file.hunks:
                mapping = LineMapper.map_new_lines(hunk)
                if any(line in mapping for line in targets):
                    covered = True
                required = LineMapper.required_changes(hunk, targets)
                if required:
                    selections[hunk.index] = required

            spec = format_ranges(line_ranges)
            if not covered:
                raise RangeError(f"Lines {spec} are outside every change in {path}", details={"path": path})
            if not selections:
                raise NoChangesError(
                    f"No added lines found in lines {spec} of {path}", details={"path": path}
                )

            partial = file.with_hunks(PatchBuilder.rebuild_hunks(file.hunks, selections))
            options: Tuple[str, ...] = ("--cached", "--recount")
            if context == 0:
                options = ("--cached", "--unidiff-zero", "--recount")
            noun = "line" if len(targets) == 1 else "lines"
            return self._apply(
                PatchBuilder.build_patch([partial]),
                files=[partial.path],
                selectors=[str(item) for item in line_ranges],
                options=options,
                description=description or f"Staged {noun} {spec} from {path}",
            )

    def _apply(
        self,
        patch: str,
        *,
        files: List[str],
        selectors: List[str],
        options: Tuple[str, ...],
        description: str,
    ) -> StagingResult:
        LOGGER.debug("Generated patch:\n%s", patch)
        emit_event("patch_built", files=files, selectors=selectors, options=options, size=len(patch))
        result = StagingResult(
            patch=patch,
            files=files,
            selectors=selectors,
            options=options,
            description=description,
            dry_run=self.config.dry_run,
        )
        if self.config.dry_run:
            emit_event("patch_dry_run", files=files, options=options)
            return result

        try:
            self.repo.apply(patch, *options)
        except GitError as error:
            emit_event("patch_apply_failed", files=files, options=options, error=str(error))
            raise ApplyFailure(str(error), patch=patch, options=options) from error

        result.entry = self.cache.add_history(
            patch,
            files=files,
            selectors=selectors,
            description=description,
            apply_options=options,
        )
        self.cache.save()
        emit_event("patch_apply_succeeded", files=files, options=options, history_id=result.entry.id)
        return result

    # ---------------------------------------------------------------- undo
    def history(self) -> List[HistoryEntry]:
        return self.cache.history()

    def undo(self, step: int = 0) -> StagingResult:
        """Reverse-apply the history entry ``step`` back (0 is the most recent).

        The entry is removed only when the reverse application succeeds.
        """
        if step < 0:
            raise RangeError(f"Undo step must be zero or greater (got {step}).")
        entry = self.cache.history_entry(step)
        if entry is None:
            if not self.cache.history():
                raise RangeError("No staging history available to undo.")
            raise RangeError(f"No staging history at step {step}.")

        options = tuple(entry.apply_options)
        result = StagingResult(
            patch=entry.patch,
            files=list(entry.files),
            selectors=list(entry.selectors),
            options=options,
            description=entry.description or "staging operation",
            dry_run=self.config.dry_run,
            entry=entry,
        )
        LOGGER.debug("Reverse patch for %s:\n%s", entry.id, entry.patch)
        if self.config.dry_run:
            emit_event("patch_dry_run", files=entry.files, options=options, reverse=True)
            return result

        try:
            self.repo.reverse_apply(entry.patch, *options)
        except GitError as error:
            emit_event("undo_failed", history_id=entry.id, error=str(error))
            raise UndoFailure(
                "Failed to undo staging. The working tree may have changed since the staging operation. "
                f"({error})",
                entry=entry,
            ) from error

        self.cache.remove_history_entry(step)
        self.cache.save()
        emit_event("undo_succeeded", history_id=entry.id, files=entry.files)
        return result


__all__ = ["ChangeListing", "FileListing", "StagingResult", "StagingService"]
