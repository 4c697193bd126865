"""
Git-backed archive of the mirrored pages.

GitArchive wraps the handful of git commands the mirror needs. The module
level helpers replace a country's directory by removing it from the index,
writing it afresh and staging it, so a superseded page shows up as a
deletion rather than a silent overwrite.
"""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import shutil
import subprocess
from typing import Protocol, Sequence

from .config import ArchiveConfig
from .core.ledger import build_commit_message
from .core.types import ContentUnit, PageRecord
from .errors import PersistenceError


logger = logging.getLogger(__name__)

_HISTORY_SEPARATOR = "\x00"


class Archive(Protocol):
    """Version control operations used by the mirror."""

    def stage(self, path: Path) -> None: ...

    def remove_recursive(self, path: Path) -> None: ...

    def commit(self, message: str) -> None: ...

    def push(self) -> None: ...

    def read_history(self, last_n: int) -> list[str]: ...

    def diff_staged_names(self) -> list[str]: ...


class GitArchive:
    """Archive backed by a git working tree.

    Attributes:
        path: Root of the working tree
        cfg: Remote, branch and author settings
    """

    def __init__(self, path: Path, cfg: ArchiveConfig):
        self.path = Path(path).resolve()
        self.cfg = cfg

    @classmethod
    def clone(cls, remote_url: str, path: Path, cfg: ArchiveConfig) -> "GitArchive":
        logger.info("Cloning %s into %s", remote_url, path)
        _run_git(["clone", remote_url, str(path)], cwd=Path(path).parent)
        return cls(path, cfg)

    def stage(self, path: Path) -> None:
        self._git("add", "--", _abspath(path))

    def remove_recursive(self, path: Path) -> None:
        self._git("rm", "-r", "-q", "--ignore-unmatch", "--", _abspath(path))

    def commit(self, message: str) -> None:
        self._git(
            "commit",
            f"--author={self._identity()}",
            "--allow-empty",
            "-m",
            message,
        )

    def push(self) -> None:
        self._git("push", self.cfg.remote, self.cfg.branch)

    def read_history(self, last_n: int) -> list[str]:
        """Return the messages of the last ``last_n`` commits, newest first."""
        if not self.has_commits():
            return []
        output = self._git("log", "--format=%B%x00", "-n", str(last_n), "HEAD")
        return [message.strip("\n") for message in output.split(_HISTORY_SEPARATOR) if message.strip()]

    def has_commits(self) -> bool:
        try:
            self._git("rev-parse", "--verify", "--quiet", "HEAD")
        except PersistenceError:
            return False
        return True

    def diff_staged_names(self) -> list[str]:
        output = self._git("diff", "--name-only", "--cached")
        return [line for line in output.splitlines() if line.strip()]

    def _identity(self) -> str:
        return f"{self.cfg.author_name} <{self.cfg.author_email}>"

    def _git(self, *args: str) -> str:
        config = [
            f"user.name={self.cfg.author_name}",
            f"user.email={self.cfg.author_email}",
        ]
        return _run_git(list(args), cwd=self.path, config=config)


def _abspath(path: Path) -> str:
    return str(Path(path).resolve())


def _run_git(args: Sequence[str], cwd: Path, config: Sequence[str] = ()) -> str:
    command = ["git"]
    for item in config:
        command.extend(["-c", item])
    command.extend(args)
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise PersistenceError(f"Error running git {args[0]}: {exc}") from exc
    if completed.returncode != 0:
        raise PersistenceError(
            f"Error running git {args[0]}: exit code {completed.returncode}",
            stderr=completed.stderr,
        )
    return completed.stdout


def unit_dir(content_root: Path, unit: ContentUnit) -> Path:
    return content_root / unit.slug


def write_unit(content_root: Path, unit: ContentUnit, pages: Sequence[PageRecord]) -> Path:
    """Write a country's pages to a fresh directory and return it.

    Raises:
        PersistenceError: If the directory or a page file cannot be written
    """
    directory = unit_dir(content_root, unit)
    try:
        if directory.exists():
            shutil.rmtree(directory)
        directory.mkdir(parents=True)
        for page in pages:
            (directory / page.file_name).write_text(page.body, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Error writing {directory}: {exc}") from exc
    return directory


def replace_unit(
    archive: Archive,
    content_root: Path,
    unit: ContentUnit,
    pages: Sequence[PageRecord],
    reason: str,
    now: datetime | None = None,
) -> Path:
    """Replace one country in the archive and commit it with a ledger marker.

    Args:
        archive: Archive to stage and commit into
        content_root: Directory holding one folder per country
        unit: The country being replaced
        pages: Freshly fetched pages of the country
        reason: First paragraph of the commit message
        now: Timestamp recorded in the ledger marker, defaults to the current time

    Returns:
        The country's directory
    """
    directory = unit_dir(content_root, unit)
    if directory.exists():
        archive.remove_recursive(directory)
    write_unit(content_root, unit, pages)
    archive.stage(directory)
    archive.commit(build_commit_message(reason, now))
    return directory


def clear_content_root(archive: Archive, content_root: Path) -> None:
    """Stage removal of every country ahead of a full resync."""
    if not content_root.exists():
        return
    archive.remove_recursive(content_root)
    if content_root.exists():
        try:
            shutil.rmtree(content_root)
        except OSError as exc:
            raise PersistenceError(f"Error clearing {content_root}: {exc}") from exc


def stage_unit(
    archive: Archive,
    content_root: Path,
    unit: ContentUnit,
    pages: Sequence[PageRecord],
) -> Path:
    """Write and stage a country without committing, for batched full resyncs."""
    directory = write_unit(content_root, unit, pages)
    archive.stage(directory)
    return directory
