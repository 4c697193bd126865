"""
Orchestration of a mirror cycle.

This module coordinates the collaborators:
1. Fetch the Atom feed and recover the sync ledger from git history
2. Classify the changes (full resync or incremental)
3. Fetch the affected countries through the browser session, with retries
4. Replace their directories in the archive, commit, and push once

Every entry point leaves the archive consistent only on success; a failure
midway leaves staged or committed work that the next cycle reconciles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import time
from typing import Callable, TypeVar

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)

from .archive import Archive, GitArchive, clear_content_root, replace_unit, stage_unit
from .config import AppConfig
from .core.ledger import build_commit_message, recover_last_sync
from .core.reconcile import detect_changes, filter_new_entries
from .core.types import ChangeEntry, ContentUnit, FullResync, PageRecord, ReconciliationResult
from .errors import LedgerRecoveryError, PersistenceError
from .feed import fetch_feed, parse_summary
from .fetch.pipeline import fetch_content_unit, list_content_units
from .logging_utils import LOGGER_NAME, log_event
from .retry import run_with_retry
from .session import SessionHandle, build_session_factory


T = TypeVar("T")

INITIAL_IMPORT_REASON = "Initial import"
CATCH_UP_REASON = "Missed some updates as they happened, catching up"
MISSING_LEDGER_REASON = "No sync marker found in history, re-fetching everything"
NO_UNANNOUNCED_CHANGES = "No unannounced changes discovered"
UNANNOUNCED_CHANGES = "Changes discovered which weren't announced on the atom feed"


@dataclass
class Mirror:
    """Everything a cycle needs, wired once per process.

    Attributes:
        cfg: Application configuration
        session: Shared browser session handle
        archive: Git archive the pages are committed to
        content_root: Directory of the archive holding one folder per country
        fetch_entries: Returns the current feed entries, newest first
        logger: Logger for structured events
        console: Rich console used for progress output
        show_progress: Whether full resyncs display a progress bar
    """

    cfg: AppConfig
    session: SessionHandle
    archive: Archive
    content_root: Path
    fetch_entries: Callable[[], list[ChangeEntry]]
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(LOGGER_NAME))
    console: Console | None = None
    show_progress: bool = False


def build_mirror(cfg: AppConfig, show_progress: bool = False, console: Console | None = None) -> Mirror:
    """Wire the production collaborators from configuration."""
    archive = ensure_archive(cfg)
    return Mirror(
        cfg=cfg,
        session=SessionHandle(build_session_factory(cfg.browser)),
        archive=archive,
        content_root=archive.path / cfg.archive.content_dir,
        fetch_entries=lambda: fetch_feed(cfg.feed),
        console=console,
        show_progress=show_progress,
    )


def ensure_archive(cfg: AppConfig) -> GitArchive:
    """Open the archive, cloning it first when the working tree is missing."""
    path = Path(cfg.archive.path).expanduser()
    if path.exists():
        return GitArchive(path, cfg.archive)
    if not cfg.archive.remote_url:
        raise PersistenceError(f"Archive {path} does not exist and no remote_url is configured")
    path.parent.mkdir(parents=True, exist_ok=True)
    return GitArchive.clone(cfg.archive.remote_url, path, cfg.archive)


def run_initial_import(mirror: Mirror) -> None:
    fetch_all(mirror, INITIAL_IMPORT_REASON)


def poll_feed(mirror: Mirror) -> ReconciliationResult:
    """Run one reconciliation cycle against the feed.

    Returns:
        The classification that was acted upon
    """
    entries = _fetch_feed_entries(mirror)
    try:
        last_sync = recover_last_sync(mirror.archive, mirror.cfg.archive.history_depth)
    except LedgerRecoveryError:
        if not mirror.cfg.archive.resync_without_ledger:
            raise
        mirror.logger.warning("No sync marker in history, falling back to a full resync")
        fetch_all(mirror, MISSING_LEDGER_REASON)
        return FullResync("no sync ledger")

    result = detect_changes(entries, last_sync)
    if isinstance(result, FullResync):
        log_event(
            mirror.logger,
            "Full resync required",
            event="full_resync",
            reason=result.reason,
            last_sync=last_sync.isoformat(),
        )
        fetch_all(mirror, CATCH_UP_REASON)
        return result

    if result.is_empty:
        log_event(mirror.logger, "No new feed entries", event="no_changes", last_sync=last_sync.isoformat())
        return result

    for entry in result.entries:
        unit = ContentUnit.from_entry(entry)
        pages = _fetch_unit(mirror, unit)
        replace_unit(
            mirror.archive,
            mirror.content_root,
            unit,
            pages,
            f"{unit.display_name}: {parse_summary(entry)}",
        )
        log_event(
            mirror.logger,
            "Country updated",
            event="unit_updated",
            country=unit.display_name,
            pages=len(pages),
            updated_at=entry.updated_at.isoformat(),
        )
    _push(mirror)
    return result


def fetch_all(mirror: Mirror, reason: str) -> None:
    """Replace every country in the archive as one commit, then push."""
    units = _list_units(mirror)
    clear_content_root(mirror.archive, mirror.content_root)
    _refetch_everything(mirror, units)
    mirror.archive.commit(build_commit_message(reason))
    log_event(mirror.logger, "Full resync committed", event="full_resync_committed", reason=reason)
    _push(mirror)


def discover_unannounced(mirror: Mirror) -> list[str]:
    """Re-fetch everything and commit whatever the feed never announced.

    Catches up with the feed first so that announced changes are attributed
    to their own commits.

    Returns:
        Paths that changed without a feed announcement
    """
    poll_feed(mirror)

    units = _list_units(mirror)
    clear_content_root(mirror.archive, mirror.content_root)
    _refetch_everything(mirror, units)

    if _has_pending_entries(mirror):
        mirror.logger.error("Changes were published while discovering unannounced changes")

    changed = mirror.archive.diff_staged_names()
    message = UNANNOUNCED_CHANGES if changed else NO_UNANNOUNCED_CHANGES
    mirror.archive.commit(build_commit_message(message))
    log_event(
        mirror.logger,
        message,
        event="discover_unannounced",
        changed_files=len(changed),
    )
    _push(mirror)
    return changed


def poll_continuously(
    mirror: Mirror,
    interval_seconds: float,
    max_cycles: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Poll the feed now and then every ``interval_seconds`` after each cycle ends.

    Cycles never overlap. The first error ends the loop.

    Returns:
        Number of completed cycles (only reached when max_cycles is set)
    """
    cycles = 0
    while True:
        poll_feed(mirror)
        cycles += 1
        if max_cycles is not None and cycles >= max_cycles:
            return cycles
        sleep(interval_seconds)


def _fetch_feed_entries(mirror: Mirror) -> list[ChangeEntry]:
    return _retry(mirror, mirror.fetch_entries, "fetching atom feed", recover=False)


def _has_pending_entries(mirror: Mirror) -> bool:
    entries = _fetch_feed_entries(mirror)
    last_sync = recover_last_sync(mirror.archive, mirror.cfg.archive.history_depth)
    return bool(filter_new_entries(entries, last_sync))


def _list_units(mirror: Mirror) -> list[ContentUnit]:
    return _retry(
        mirror,
        lambda: list_content_units(mirror.session.acquire(), mirror.cfg.site),
        "listing countries",
    )


def _fetch_unit(mirror: Mirror, unit: ContentUnit) -> list[PageRecord]:
    mirror.logger.info("Fetching country %s", unit.display_name)
    return _retry(
        mirror,
        lambda: fetch_content_unit(mirror.session.acquire(), unit, mirror.cfg.site),
        f"fetching {unit.display_name}",
    )


def _refetch_everything(mirror: Mirror, units: list[ContentUnit]) -> None:
    def fetch_and_stage(unit: ContentUnit) -> None:
        pages = _fetch_unit(mirror, unit)
        stage_unit(mirror.archive, mirror.content_root, unit, pages)

    if not mirror.show_progress:
        for unit in units:
            fetch_and_stage(unit)
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=mirror.console or Console(),
        transient=False,
    ) as progress:
        task = progress.add_task("Fetching countries", total=len(units))
        for unit in units:
            progress.update(task, description=f"Fetching {unit.display_name}")
            fetch_and_stage(unit)
            progress.advance(task)


def _retry(mirror: Mirror, action: Callable[[], T], description: str, recover: bool = True) -> T:
    return run_with_retry(
        action,
        mirror.session.invalidate if recover else None,
        attempts=mirror.cfg.retry.attempts,
        backoff_seconds=mirror.cfg.retry.backoff_seconds,
        description=description,
    )


def _push(mirror: Mirror) -> None:
    if not mirror.cfg.archive.push:
        mirror.logger.info("Push disabled, leaving commits local")
        return
    mirror.archive.push()
    log_event(mirror.logger, "Pushed archive", event="pushed")

