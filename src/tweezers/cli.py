"""CLI commands for listing and partially staging unstaged changes."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import typer

from .config import DEFAULT_CONFIG_NAME, TweezersConfig, load_config
from .errors import SelectorNotFound, TweezersError
from .services.staging import StagingResult, StagingService
from .tools.vcs import GitError, GitRepository
from .utils.ranges import parse_file_selector, split_selectors
from .utils.render import hunk_label, render_history, render_listing

APP_HELP = "Stage individual hunks or lines without an interactive session."
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

app = typer.Typer(help=APP_HELP)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING, format=LOG_FORMAT)


def _open_service(
    config: Optional[str],
    *,
    debug: bool = False,
    precise: bool = False,
    dry_run: bool = False,
) -> Tuple[GitRepository, StagingService]:
    repo = GitRepository.discover()
    config_path = Path(config) if config else repo.root / DEFAULT_CONFIG_NAME
    settings: TweezersConfig = load_config(config_path, env=os.environ)
    settings = settings.with_overrides(
        debug=True if debug else None,
        precise=True if precise else None,
        dry_run=True if dry_run else None,
    )
    _configure_logging(settings.debug)
    return repo, StagingService.open(repo, settings)


def _fail(error: Exception) -> typer.Exit:
    typer.echo(f"[ERROR] {error}", err=True)
    if isinstance(error, SelectorNotFound) and error.hunks:
        typer.echo("Available hunks:", err=True)
        for info in error.hunks:
            typer.echo(f"  {hunk_label(info)}", err=True)
    return typer.Exit(code=1)


def _echo_result(result: StagingResult) -> None:
    if result.dry_run:
        typer.echo(f"[DRY RUN] {result.description}")
        typer.echo(result.patch, nl=False)
        return
    typer.echo(result.description)


def _parse_targets(repo: GitRepository, targets: List[str]) -> Dict[str, List[str]]:
    """Turn ``path:sel`` tokens, or ``path sel`` pairs, into a selection mapping."""
    selection: Dict[str, List[str]] = {}
    position = 0
    while position < len(targets):
        path, selector = parse_file_selector(targets[position])
        position += 1
        if selector is None:
            if position >= len(targets):
                raise typer.BadParameter(f"Missing hunk selector for {path}")
            selector = targets[position]
            position += 1
        selectors = split_selectors(selector)
        if not selectors:
            raise typer.BadParameter(f"Missing hunk selector for {path}")
        selection.setdefault(repo.normalise_path(path), []).extend(selectors)
    return selection


@app.command("list")
def list_command(
    file: Optional[str] = typer.Argument(None, help="File to list hunks from (all changed files when omitted)."),
    precise: bool = typer.Option(False, "--precise", "-p", help="Use zero-context diffs for finer hunks."),
    inline: bool = typer.Option(False, "--inline", "-i", help="Show hunk bodies under each header."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the configuration file (defaults to .tweezers.yaml at the repository root).",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging, including generated patches."),
) -> None:
    """List hunks with their index and stable id."""
    try:
        repo, service = _open_service(config, debug=debug, precise=precise)
        mode_precise = service.config.precise
        if file is not None:
            path = repo.normalise_path(file)
            for line in render_listing(path, service.list_hunks(path), precise=mode_precise, inline=inline):
                typer.echo(line)
            return

        listing = service.list_changes()
        if not listing.files and not listing.skipped:
            typer.echo("No unstaged changes.")
        for entry in listing.files:
            for line in render_listing(entry.path, entry.hunks, precise=mode_precise, inline=inline):
                typer.echo(line)
            typer.echo("")
        for path, reason in listing.skipped.items():
            typer.echo(f"[WARN] Skipped {path}: {reason}")
    except (TweezersError, GitError) as error:
        raise _fail(error) from error


@app.command()
def hunk(
    targets: List[str] = typer.Argument(
        ...,
        help="'file:selectors' tokens or 'file selectors' pairs; selectors are comma-separated ids or indices.",
    ),
    precise: bool = typer.Option(False, "--precise", "-p", help="Use zero-context diffs for finer hunks."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the patch instead of applying it."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the configuration file (defaults to .tweezers.yaml at the repository root).",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging, including generated patches."),
) -> None:
    """Stage hunks by index or id, merged into a single patch."""
    try:
        repo, service = _open_service(config, debug=debug, precise=precise, dry_run=dry_run)
        selection = _parse_targets(repo, targets)
        _echo_result(service.stage_hunks(selection))
    except (TweezersError, GitError) as error:
        raise _fail(error) from error


@app.command()
def lines(
    file: str = typer.Argument(..., help="File to stage lines from."),
    ranges: str = typer.Argument(..., help="Line ranges in the working-tree file, e.g. 10-15,20."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the patch instead of applying it."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the configuration file (defaults to .tweezers.yaml at the repository root).",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging, including generated patches."),
) -> None:
    """Stage added lines by their line numbers in the working-tree file."""
    try:
        repo, service = _open_service(config, debug=debug, dry_run=dry_run)
        _echo_result(service.stage_lines(repo.normalise_path(file), ranges))
    except (TweezersError, GitError) as error:
        raise _fail(error) from error


@app.command()
def undo(
    step: int = typer.Option(0, "--step", "-s", help="Which staging operation to undo (0 = most recent)."),
    list_history: bool = typer.Option(False, "--list", "-l", help="List available undo history."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the patch instead of applying it."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the configuration file (defaults to .tweezers.yaml at the repository root).",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging, including generated patches."),
) -> None:
    """Undo a previous staging operation by reverse-applying its patch."""
    try:
        _, service = _open_service(config, debug=debug, dry_run=dry_run)
        if list_history:
            for line in render_history(service.history()):
                typer.echo(line)
            return
        result = service.undo(step)
    except (TweezersError, GitError) as error:
        raise _fail(error) from error

    if result.dry_run:
        typer.echo(f"[DRY RUN] Would undo: {result.description}")
        typer.echo(result.patch, nl=False)
        return
    typer.echo(f"Successfully undid: {result.description}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
