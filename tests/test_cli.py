from __future__ import annotations

import pytest
from typer.testing import CliRunner

from tweezers.cli import app


def _numbered(count: int, **replacements: str) -> str:
    return "".join(f"{replacements.get(f'l{number}', f'line {number}')}\n" for number in range(1, count + 1))


@pytest.fixture()
def cli_repo(git_repo, monkeypatch):
    monkeypatch.chdir(git_repo.root)
    monkeypatch.delenv("TWEEZERS_PRECISE", raising=False)
    monkeypatch.delenv("TWEEZERS_DEBUG", raising=False)
    git_repo.commit("app.txt", _numbered(20))
    git_repo.write("app.txt", _numbered(20, l1="line 1 changed", l16="line 16 changed"))
    return git_repo


def test_list_prints_hunks_with_index_and_id(cli_repo) -> None:
    result = CliRunner().invoke(app, ["list", "app.txt"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "Hunks in app.txt (normal mode):"
    assert lines[1].startswith("[1|")
    assert "@@ -1,4 +1,4 @@ (+1 -1) | line 1" in lines[1]
    assert lines[2].startswith("[2|")


def test_list_without_file_covers_every_change(cli_repo) -> None:
    cli_repo.write("fresh.txt", "new\n")

    result = CliRunner().invoke(app, ["list"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Hunks in app.txt (normal mode):" in result.output
    assert "Hunks in fresh.txt (normal mode):" in result.output


def test_list_reports_clean_tree(git_repo, monkeypatch) -> None:
    monkeypatch.chdir(git_repo.root)

    result = CliRunner().invoke(app, ["list"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "No unstaged changes." in result.output


def test_config_file_enables_precise_mode(cli_repo) -> None:
    (cli_repo.root / ".tweezers.yaml").write_text("staging:\n  precise: true\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["list", "app.txt"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Hunks in app.txt (precise mode):" in result.output
    assert "@@ -1,1 +1,1 @@" in result.output


def test_hunk_stages_selected_hunk(cli_repo) -> None:
    result = CliRunner().invoke(app, ["hunk", "app.txt:2"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Staged hunk 2 from app.txt" in result.output
    assert cli_repo.staged("app.txt") == _numbered(20, l16="line 16 changed")


def test_hunk_accepts_path_and_selector_pairs(cli_repo) -> None:
    result = CliRunner().invoke(app, ["hunk", "app.txt", "1,2"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Staged hunks 1, 2 from app.txt" in result.output
    assert cli_repo.staged("app.txt") == _numbered(20, l1="line 1 changed", l16="line 16 changed")


def test_unknown_hunk_lists_alternatives(cli_repo) -> None:
    result = CliRunner().invoke(app, ["hunk", "app.txt:zzzz"])

    assert result.exit_code == 1
    assert "[ERROR] Hunk 'zzzz' not found in app.txt" in result.output
    assert "Available hunks:" in result.output
    assert "  [1|" in result.output


def test_hunk_requires_a_selector(cli_repo) -> None:
    result = CliRunner().invoke(app, ["hunk", "app.txt"])

    assert result.exit_code == 2


def test_lines_dry_run_prints_patch(cli_repo) -> None:
    result = CliRunner().invoke(app, ["lines", "app.txt", "16", "--dry-run"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "[DRY RUN] Staged line 16 from app.txt" in result.output
    assert "+line 16 changed" in result.output
    assert cli_repo.staged("app.txt") == _numbered(20)


def test_lines_rejects_bad_ranges(cli_repo) -> None:
    result = CliRunner().invoke(app, ["lines", "app.txt", "9-2"])

    assert result.exit_code == 1
    assert "[ERROR]" in result.output


def test_undo_lists_and_reverts_history(cli_repo) -> None:
    runner = CliRunner()

    empty = runner.invoke(app, ["undo", "--list"], catch_exceptions=False)
    assert "No staging history available." in empty.output

    runner.invoke(app, ["hunk", "app.txt:1"], catch_exceptions=False)
    history = runner.invoke(app, ["undo", "--list"], catch_exceptions=False)
    assert history.output.startswith("[0] ")
    assert "Staged hunk 1 from app.txt" in history.output

    preview = runner.invoke(app, ["undo", "--dry-run"], catch_exceptions=False)
    assert "[DRY RUN] Would undo: Staged hunk 1 from app.txt" in preview.output
    assert cli_repo.staged("app.txt") == _numbered(20, l1="line 1 changed")

    undone = runner.invoke(app, ["undo"], catch_exceptions=False)
    assert undone.exit_code == 0, undone.output
    assert "Successfully undid: Staged hunk 1 from app.txt" in undone.output
    assert cli_repo.staged("app.txt") == _numbered(20)


def test_undo_without_history_fails(cli_repo) -> None:
    result = CliRunner().invoke(app, ["undo"])

    assert result.exit_code == 1
    assert "No staging history available to undo." in result.output
