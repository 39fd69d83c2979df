"""Git integration used by the staging service."""

from .vcs import GitError, GitRepository

__all__ = ["GitError", "GitRepository"]
