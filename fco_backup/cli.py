"""
Command-line interface for the travel advice mirror.

Uses Typer to expose one command per mode. Options shared by every mode are
taken by the app callback; configuration comes from an optional YAML file,
with command line options overriding it. Supports loading .env files.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv
import typer
from rich.console import Console

from . import runner
from .config import AppConfig, load_config
from .errors import FcoBackupError
from .logging_utils import setup_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@dataclass
class CliState:
    cfg: AppConfig
    progress: bool


@app.callback()
def main(
    ctx: typer.Context,
    git_repo: Path = typer.Option(..., "--git-repo", help="Working tree of the archive."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
    cdp_endpoint: str | None = typer.Option(
        None,
        "--cdp-endpoint",
        envvar="FCO_BACKUP_CDP_ENDPOINT",
        help="Attach to a running Chromium over CDP instead of launching one.",
    ),
    push: bool | None = typer.Option(None, "--push/--no-push", help="Push after committing."),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
):
    """Mirror the foreign travel advice pages into a git repository."""
    load_dotenv()

    cfg = load_config(str(config) if config else None)
    cfg.archive.path = str(git_repo)
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file
    if cdp_endpoint:
        cfg.browser.cdp_endpoint = cdp_endpoint
    if push is not None:
        cfg.archive.push = push

    setup_logging(cfg.logging)
    ctx.obj = CliState(cfg=cfg, progress=progress)


@app.command("initial-import")
def initial_import(ctx: typer.Context):
    """Fetch every country and commit them as the initial import."""
    _run(ctx, runner.run_initial_import, "Initial import complete")


@app.command("discover-unannounced")
def discover_unannounced(ctx: typer.Context):
    """Re-fetch everything to find changes the feed never announced."""
    _run(ctx, runner.discover_unannounced, "Discovery complete")


@app.command("poll-feed-once")
def poll_feed_once(ctx: typer.Context):
    """Apply the changes announced on the feed since the last sync."""
    _run(ctx, runner.poll_feed, "Feed polled")


@app.command("poll-feed-continuous")
def poll_feed_continuous(
    ctx: typer.Context,
    interval: float | None = typer.Option(
        None, "--interval", help="Seconds between polls (default from config)."
    ),
):
    """Poll the feed forever, one cycle at a time."""
    state: CliState = ctx.obj
    seconds = interval if interval is not None else state.cfg.poll.interval_seconds
    _run(ctx, lambda mirror: runner.poll_continuously(mirror, seconds), "Polling stopped")


def _run(ctx: typer.Context, action: Callable[[runner.Mirror], object], done: str) -> None:
    state: CliState = ctx.obj
    logger = logging.getLogger("fco_backup")
    mirror = None
    try:
        mirror = runner.build_mirror(state.cfg, show_progress=state.progress, console=console)
        action(mirror)
    except FcoBackupError as exc:
        logger.error("%s: %s", type(exc).__name__, exc, exc_info=True)
        raise typer.Exit(code=1) from exc
    finally:
        if mirror is not None:
            mirror.session.close()
    console.print(done)


if __name__ == "__main__":
    app()
