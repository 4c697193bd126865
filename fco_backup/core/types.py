"""
Core data types for the travel advice mirror.

This module defines the records that flow through a reconciliation cycle:
- ChangeEntry: One entry of the change-notification feed
- FullResync / Incremental: The outcome of comparing the feed to the ledger
- ContentUnit: One country, identified by its page URL
- PageRecord: One extracted sub-page of a country
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import os
from typing import Union

from ..errors import UnsafeSlugError, ValidationError


HTML_MIME_TYPE = "text/html"


@dataclass(frozen=True)
class FeedLink:
    """A typed link attached to a feed entry."""

    href: str
    type: str | None = None
    rel: str | None = None


@dataclass(frozen=True)
class ChangeEntry:
    """An entry parsed from the change-notification feed.

    Attributes:
        id: Feed-unique identifier of the entry
        title: Country name as announced by the feed
        url: The entry's primary link
        updated_at: Timezone-aware time the entry was last updated
        summary: Raw HTML summary, or None if the entry has none
        links: Every link of the entry with its MIME type
    """

    id: str
    title: str
    url: str
    updated_at: datetime
    summary: str | None = None
    links: tuple[FeedLink, ...] = field(default_factory=tuple)

    @property
    def html_url(self) -> str | None:
        """Return the href of the first text/html link, if any."""
        for link in self.links:
            if link.type == HTML_MIME_TYPE:
                return link.href
        return None


@dataclass(frozen=True)
class FullResync:
    """Every content unit must be re-fetched."""

    reason: str


@dataclass(frozen=True)
class Incremental:
    """Only the units named by these entries changed, oldest first."""

    entries: tuple[ChangeEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.entries


ReconciliationResult = Union[FullResync, Incremental]


def validate_slug(slug: str) -> str:
    """Reject directory names that could escape the content root.

    Raises:
        UnsafeSlugError: If the slug is empty, "." or "..", or contains a path separator
    """
    if slug in ("", ".", ".."):
        raise UnsafeSlugError(slug)
    separators = {"/", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    if any(sep in slug for sep in separators):
        raise UnsafeSlugError(slug)
    return slug


@dataclass(frozen=True)
class ContentUnit:
    """One top-level subject of the archive (a country).

    Attributes:
        display_name: Human readable name, used in commit messages
        source_url: URL of the unit's first page
    """

    display_name: str
    source_url: str

    def __post_init__(self) -> None:
        validate_slug(self.slug)

    @property
    def slug(self) -> str:
        """Directory name derived from the last path segment of source_url.

        Raises:
            UnsafeSlugError: If the segment could escape the content root
        """
        return validate_slug(self.source_url.split("/")[-1])

    @classmethod
    def from_entry(cls, entry: ChangeEntry) -> "ContentUnit":
        url = entry.html_url
        if url is None:
            raise ValidationError(f"Feed entry {entry.id!r} has no text/html link")
        return cls(display_name=entry.title, source_url=url)


@dataclass(frozen=True)
class PageRecord:
    """Extracted title and body of one sub-page."""

    title: str
    body: str

    @property
    def file_name(self) -> str:
        """Lowercased, hyphen-joined title with dots and slashes replaced.

        Example:
            >>> PageRecord("Safety and security", "").file_name
            'safety-and-security'
        """
        parts = [
            part.replace(".", "_").replace("/", "_")
            for part in self.title.lower().split()
        ]
        name = "-".join(parts)
        if not name:
            raise ValidationError(f"Page title {self.title!r} does not yield a file name")
        return name
