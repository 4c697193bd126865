"""Shared fakes for the browser session, the archive and feed entries."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import shutil

import pytest

from fco_backup.config import SiteConfig
from fco_backup.core.types import ChangeEntry, FeedLink
from fco_backup.errors import SessionError


SITE = SiteConfig(
    index_url="https://example.gov/advice",
    unit_link_selector=".countries a",
    toc_item_selector="nav li",
    title_selector=".title",
    body_selector=".body",
)

BASE_TIME = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeElement:
    def __init__(self, text: str = "", props: dict | None = None, children: dict | None = None):
        self.text = text
        self.props = props or {}
        self.children = children or {}


def link(href: str, text: str = "") -> FakeElement:
    return FakeElement(text=text, props={"href": href})


def toc_item(*hrefs: str) -> FakeElement:
    return FakeElement(children={"a": [link(href) for href in hrefs]})


def page(title: str | None, bodies: list[str], toc: list[FakeElement] | None = None) -> dict:
    elements: dict[str, list[FakeElement]] = {SITE.body_selector: [FakeElement(b) for b in bodies]}
    if title is not None:
        elements[SITE.title_selector] = [FakeElement(title)]
    if toc is not None:
        elements[SITE.toc_item_selector] = toc
    return elements


class FakeSession:
    """In-memory browser: each URL maps selectors to elements."""

    def __init__(self, pages: dict[str, dict], fail_urls: dict[str, int] | None = None):
        self.pages = pages
        self.fail_urls = dict(fail_urls or {})
        self.current: dict = {}
        self.visited: list[str] = []
        self.closed = False

    def navigate(self, url: str) -> None:
        self.visited.append(url)
        if self.fail_urls.get(url, 0) > 0:
            self.fail_urls[url] -= 1
            raise SessionError(f"Error getting url {url}")
        if url not in self.pages:
            raise SessionError(f"Error getting url {url}: not found")
        self.current = self.pages[url]

    def find_all(self, selector: str, within=None):
        if within is not None:
            return list(within.children.get(selector, []))
        return list(self.current.get(selector, []))

    def text(self, element) -> str:
        return element.text

    def property(self, element, name: str) -> str:
        return element.props.get(name, "")

    def close(self) -> None:
        self.closed = True


class FakeArchive:
    """Records git operations and mirrors removals on disk."""

    def __init__(self, history: list[str] | None = None):
        self.history = list(history or [])
        self.staged: list[Path] = []
        self.removed: list[Path] = []
        self.commits: list[str] = []
        self.pushes = 0
        self.staged_names: list[str] | None = None
        self.calls: list[str] = []

    def stage(self, path: Path) -> None:
        self.calls.append("stage")
        self.staged.append(Path(path))

    def remove_recursive(self, path: Path) -> None:
        self.calls.append("remove")
        self.removed.append(Path(path))
        if Path(path).exists():
            shutil.rmtree(path)

    def commit(self, message: str) -> None:
        self.calls.append("commit")
        self.commits.append(message)
        self.history.insert(0, message)

    def push(self) -> None:
        self.calls.append("push")
        self.pushes += 1

    def read_history(self, last_n: int) -> list[str]:
        return self.history[:last_n]

    def diff_staged_names(self) -> list[str]:
        if self.staged_names is not None:
            return self.staged_names
        return [str(path) for path in self.staged]


def make_entry(
    slug: str,
    minutes: int = 0,
    title: str | None = None,
    summary: str | None = "<div><p>Summary</p></div>",
    html_url: str | None = None,
) -> ChangeEntry:
    url = html_url or f"https://example.gov/advice/{slug}"
    return ChangeEntry(
        id=f"tag:{slug}:{minutes}",
        title=title or slug.replace("-", " ").title(),
        url=url,
        updated_at=BASE_TIME + timedelta(minutes=minutes),
        summary=summary,
        links=(FeedLink(href=url, type="text/html", rel="alternate"),),
    )


@pytest.fixture
def site() -> SiteConfig:
    return SITE


@pytest.fixture
def fake_archive() -> FakeArchive:
    return FakeArchive()
