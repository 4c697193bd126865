"""Tests for writing countries into the archive."""

from datetime import datetime, timezone
from pathlib import Path
import shutil
import subprocess

import pytest

from fco_backup.archive import (
    GitArchive,
    clear_content_root,
    replace_unit,
    stage_unit,
    write_unit,
)
from fco_backup.config import ArchiveConfig
from fco_backup.core.ledger import recover_ledger
from fco_backup.core.types import ContentUnit, PageRecord
from fco_backup.errors import PersistenceError


FRANCE = ContentUnit("France", "https://example.gov/advice/france")
PAGES = [
    PageRecord("Summary", "Still current.\n"),
    PageRecord("Safety and security", "Be careful.\n"),
]
NOW = datetime(2026, 10, 18, 9, 30, 0, tzinfo=timezone.utc)


def _snapshot(root: Path) -> dict[str, str]:
    return {
        str(path.relative_to(root)): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def test_write_unit_creates_one_file_per_page(tmp_path):
    directory = write_unit(tmp_path, FRANCE, PAGES)

    assert directory == tmp_path / "france"
    assert _snapshot(tmp_path) == {
        "france/summary": "Still current.\n",
        "france/safety-and-security": "Be careful.\n",
    }


def test_write_unit_drops_stale_pages(tmp_path):
    write_unit(tmp_path, FRANCE, PAGES + [PageRecord("Local laws", "Old.\n")])
    write_unit(tmp_path, FRANCE, PAGES)

    assert not (tmp_path / "france" / "local-laws").exists()


def test_write_unit_fails_on_unwritable_content_root(tmp_path):
    content_root = tmp_path / "countries"
    content_root.write_text("not a directory", encoding="utf-8")

    with pytest.raises(PersistenceError):
        write_unit(content_root, FRANCE, PAGES)


def test_replace_unit_removes_stages_and_commits(tmp_path, fake_archive):
    write_unit(tmp_path, FRANCE, [PageRecord("Old", "old\n")])

    replace_unit(fake_archive, tmp_path, FRANCE, PAGES, "France: new advice", now=NOW)

    assert fake_archive.calls == ["remove", "stage", "commit"]
    assert fake_archive.removed == [tmp_path / "france"]
    assert fake_archive.staged == [tmp_path / "france"]
    assert fake_archive.commits == ["France: new advice\n\nFetched at: 2026-10-18T09:30:00Z"]
    assert recover_ledger(fake_archive.history) == NOW


def test_replace_unit_new_country_skips_removal(tmp_path, fake_archive):
    replace_unit(fake_archive, tmp_path, FRANCE, PAGES, "France: first fetch", now=NOW)
    assert fake_archive.calls == ["stage", "commit"]


def test_replace_unit_is_idempotent(tmp_path, fake_archive):
    replace_unit(fake_archive, tmp_path, FRANCE, PAGES, "France", now=NOW)
    first = _snapshot(tmp_path)

    replace_unit(fake_archive, tmp_path, FRANCE, PAGES, "France", now=NOW)

    assert _snapshot(tmp_path) == first


def test_clear_content_root(tmp_path, fake_archive):
    root = tmp_path / "countries"
    write_unit(root, FRANCE, PAGES)

    clear_content_root(fake_archive, root)

    assert fake_archive.removed == [root]
    assert not root.exists()


def test_clear_missing_content_root_is_noop(tmp_path, fake_archive):
    clear_content_root(fake_archive, tmp_path / "countries")
    assert fake_archive.calls == []


def test_stage_unit_does_not_commit(tmp_path, fake_archive):
    stage_unit(fake_archive, tmp_path, FRANCE, PAGES)
    assert fake_archive.calls == ["stage"]


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _init_repo(path: Path) -> GitArchive:
    path.mkdir()
    subprocess.run(["git", "init", "-q", str(path)], check=True)
    return GitArchive(path, ArchiveConfig(path=str(path), push=False))


@requires_git
def test_git_archive_history_round_trip(tmp_path):
    archive = _init_repo(tmp_path / "repo")
    content_root = archive.path / "countries"

    assert archive.read_history(5) == []

    replace_unit(archive, content_root, FRANCE, PAGES, "France: first", now=NOW)
    later = NOW.replace(hour=10)
    replace_unit(archive, content_root, FRANCE, PAGES[:1], "France: second", now=later)

    history = archive.read_history(5)
    assert [message.splitlines()[0] for message in history] == ["France: second", "France: first"]
    assert recover_ledger(history) == later
    assert archive.diff_staged_names() == []
    assert not (content_root / "france" / "safety-and-security").exists()


@requires_git
def test_git_archive_reports_staged_names(tmp_path):
    archive = _init_repo(tmp_path / "repo")
    content_root = archive.path / "countries"

    stage_unit(archive, content_root, FRANCE, PAGES)

    assert sorted(archive.diff_staged_names()) == [
        "countries/france/safety-and-security",
        "countries/france/summary",
    ]


@requires_git
def test_git_archive_commit_author(tmp_path):
    archive = _init_repo(tmp_path / "repo")
    archive.commit("Empty commit")

    author = subprocess.run(
        ["git", "log", "-1", "--format=%an <%ae>"],
        cwd=archive.path,
        check=True,
        capture_output=True,
        text=True,
    ).stdout.strip()
    assert author == "FCO Backup <ukfcobackup@gmail.com>"


@requires_git
def test_git_failure_is_persistence_error(tmp_path):
    archive = _init_repo(tmp_path / "repo")
    with pytest.raises(PersistenceError):
        archive.push()
