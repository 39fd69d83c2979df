"""Minimal git helpers.

The helpers below provide just enough structure to read unstaged diffs, inspect
file state and feed generated patches to ``git apply`` against the index.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Sequence

_DIFF_FORMAT = ("--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/")
_BINARY_NUMSTAT = "-\t-"


class GitError(RuntimeError):
    """Raised when a git command fails or the repository cannot be used."""


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")

    @classmethod
    def discover(cls, start: Path | str | None = None) -> "GitRepository":
        """Locate the nearest git repository starting from ``start``."""

        path = Path(start or Path.cwd()).resolve()
        for candidate in (path, *path.parents):
            if (candidate / ".git").exists():
                return cls(candidate)
        raise GitError(f"Unable to locate a git repository from {path}")

    # ------------------------------------------------------------------ git IO
    def _run_git(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        input_text: str | None = None,
        ok_codes: Sequence[int] = (0,),
    ) -> subprocess.CompletedProcess[str]:
        command = ["git", *args]
        process = subprocess.run(
            command,
            cwd=self.root,
            input=input_text.encode("utf-8") if input_text is not None else None,
            capture_output=True,
            text=False,
            check=False,
        )
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        result = subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)
        if check and result.returncode not in ok_codes:
            message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
            raise GitError(f"git {' '.join(args)} failed: {message}")
        return result

    def git_dir(self) -> Path:
        """Return this working copy's private metadata directory.

        Linked worktrees resolve to their own directory under the main
        repository's ``worktrees/`` folder.
        """

        result = self._run_git(["rev-parse", "--absolute-git-dir"])
        return Path(result.stdout.strip())

    def normalise_path(self, path: Path | str, *, cwd: Path | str | None = None) -> str:
        """Return ``path`` relative to the repository root in POSIX form."""

        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = Path(cwd or Path.cwd()) / candidate
        resolved = candidate.resolve()
        try:
            return resolved.relative_to(self.root).as_posix()
        except ValueError:
            raise GitError(f"Path is outside the repository {self.root}: {path}") from None

    # ------------------------------------------------------------- repo status
    def changed_files(self) -> List[str]:
        """Return tracked files with unstaged changes plus untracked files.

        Untracked directories are expanded to the files they contain.
        """

        tracked = self._run_git(["diff", "--name-only", "-z"]).stdout
        untracked = self._run_git(["ls-files", "--others", "--exclude-standard", "-z"]).stdout
        paths = {entry for entry in (*tracked.split("\0"), *untracked.split("\0")) if entry}
        return sorted(paths)

    def is_untracked(self, path: str) -> bool:
        result = self._run_git(["status", "--porcelain", "--", path], check=False)
        if result.returncode != 0:
            return False
        return result.stdout.strip().startswith("??")

    def add_intent_to_add(self, path: str) -> None:
        """Register ``path`` with an empty index entry so ``git diff`` reports it."""

        self._run_git(["add", "-N", "--", path])

    def remove_intent_to_add(self, path: str) -> None:
        """Drop the index entry for ``path``, leaving the working-tree file alone."""

        self._run_git(["rm", "--cached", "-q", "--", path])

    def is_binary(self, path: str, *, untracked: bool | None = None) -> bool:
        """Return ``True`` when git reports ``path`` as a binary change."""

        if untracked is None:
            untracked = self.is_untracked(path)
        if untracked:
            result = self._run_git(
                ["diff", "--no-index", "--numstat", "/dev/null", path],
                check=False,
            )
            return result.stdout.strip().startswith(_BINARY_NUMSTAT)

        result = self._run_git(["diff", "--numstat", "--", path], check=False)
        return result.stdout.strip().startswith(_BINARY_NUMSTAT)

    # ----------------------------------------------------------- diff helpers
    def diff(self, path: str, *, context: int = 3) -> str:
        """Return the unstaged unified diff for ``path`` with ``context`` lines."""

        result = self._run_git(["diff", f"-U{context}", *_DIFF_FORMAT, "--", path])
        return result.stdout

    def diff_untracked(self, path: str, *, context: int = 3) -> str:
        """Diff an untracked file against ``/dev/null`` without touching the index."""

        result = self._run_git(
            ["diff", "--no-index", f"-U{context}", *_DIFF_FORMAT, "--", "/dev/null", path],
            ok_codes=(0, 1),
        )
        return result.stdout

    # ------------------------------------------------------------------ apply
    def apply(self, patch: str, *options: str) -> None:
        """Feed ``patch`` to ``git apply`` on stdin with ``options``."""

        self._run_git(["apply", *options, "-"], input_text=patch)

    def reverse_apply(self, patch: str, *options: str) -> None:
        self._run_git(["apply", "-R", *options, "-"], input_text=patch)


__all__ = ["GitError", "GitRepository"]
