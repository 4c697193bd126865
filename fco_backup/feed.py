"""
Atom feed fetching and parsing.

The feed announces every update to a country's travel advice. This module
turns it into ChangeEntry records; it does not decide what to do with them.
"""

from __future__ import annotations

from datetime import datetime
import logging

from bs4 import BeautifulSoup
import feedparser
import httpx

from .config import FeedConfig
from .core.ledger import parse_rfc3339
from .core.types import ChangeEntry, FeedLink
from .errors import FeedError


NO_SUMMARY = "[No summary]"

logger = logging.getLogger(__name__)


def fetch_feed(cfg: FeedConfig) -> list[ChangeEntry]:
    """Fetch and parse the feed, newest entry first.

    Raises:
        FeedError: On transport failure, non-success status or unparseable feed
    """
    headers = {"User-Agent": cfg.user_agent}
    try:
        with httpx.Client(
            timeout=cfg.timeout_seconds,
            headers=headers,
            follow_redirects=True,
            trust_env=cfg.trust_env,
        ) as client:
            resp = client.get(cfg.url)
    except httpx.HTTPError as exc:
        raise FeedError(f"Error fetching atom feed: {type(exc).__name__}: {exc}") from exc

    if not resp.is_success:
        raise FeedError(f"Got status {resp.status_code} ({resp.reason_phrase}) for atom feed")
    return parse_feed(resp.content)


def parse_feed(raw: bytes | str) -> list[ChangeEntry]:
    """Parse an Atom document into ChangeEntry records in feed order."""
    parsed = feedparser.parse(raw)
    if not parsed.entries and (parsed.bozo or not parsed.get("version")):
        raise FeedError(f"Error parsing atom feed: {parsed.get('bozo_exception')}")

    entries: list[ChangeEntry] = []
    for item in parsed.entries:
        updated = item.get("updated")
        if not updated:
            raise FeedError(f"Feed entry {item.get('id')!r} has no updated timestamp")
        links = tuple(
            FeedLink(href=link.get("href", ""), type=link.get("type"), rel=link.get("rel"))
            for link in item.get("links", [])
        )
        entries.append(
            ChangeEntry(
                id=item.get("id") or item.get("link", ""),
                title=item.get("title", ""),
                url=item.get("link", ""),
                updated_at=parse_timestamp(updated),
                summary=item.get("summary"),
                links=links,
            )
        )
    logger.debug("Parsed %d feed entries", len(entries))
    return entries


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp; values without an offset are taken as UTC.

    Raises:
        FeedError: If the text is not a valid timestamp
    """
    try:
        return parse_rfc3339(text)
    except ValueError as exc:
        raise FeedError(f"Error parsing date ({text}) from feed: {exc}") from exc


def parse_summary(entry: ChangeEntry) -> str:
    """Extract a one-paragraph summary for commit messages.

    Returns the text of the first paragraph of the summary (inside its
    wrapping div when there is one), the raw summary when it has no
    paragraph, or a placeholder when the entry has no summary at all.
    """
    if entry.summary is None:
        return NO_SUMMARY
    soup = BeautifulSoup(entry.summary, "html.parser")
    # feedparser drops the xhtml wrapper div, other producers keep it
    wrapper = soup.find("div") or soup
    paragraph = wrapper.find("p")
    if paragraph is not None:
        return paragraph.get_text().strip()
    return entry.summary
