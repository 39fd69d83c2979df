from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class GitRepo:
    """Throwaway repository used by the git-backed tests."""

    root: Path

    def run_git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.root,
            check=True,
            capture_output=True,
            text=True,
        )
        return result.stdout

    def write(self, relative: str, content: str | bytes) -> Path:
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_bytes(content.encode("utf-8"))
        return target

    def commit(self, relative: str, content: str | bytes, message: str = "add file") -> Path:
        target = self.write(relative, content)
        self.run_git("add", "--", relative)
        self.run_git("commit", "-q", "-m", message)
        return target

    def staged(self, relative: str) -> str:
        """Return the index version of ``relative``."""
        return self.run_git("show", f":{relative}")

    def status(self) -> str:
        return self.run_git("status", "--porcelain")


@pytest.fixture()
def git_repo(tmp_path: Path) -> GitRepo:
    """Create an empty repository with an identity and one initial commit."""

    root = tmp_path / "repo"
    root.mkdir()
    repo = GitRepo(root=root)
    repo.run_git("init", "-q")
    repo.run_git("config", "user.email", "tweezers@example.com")
    repo.run_git("config", "user.name", "Tweezers Tests")
    repo.run_git("config", "commit.gpgsign", "false")
    repo.run_git("config", "core.autocrlf", "false")
    repo.commit("README.md", "fixture repository\n", message="initial commit")
    return repo
