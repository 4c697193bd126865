"""
Extraction of country pages through a browser session.

A country page carries a table of contents. Each item either is the page
currently shown (no link) or links to a sibling sub-page. Every sub-page
becomes one PageRecord.
"""

from __future__ import annotations

import logging

from ..config import SiteConfig
from ..core.types import ContentUnit, PageRecord
from ..errors import ExtractionError
from ..session import Session


logger = logging.getLogger(__name__)


def list_content_units(session: Session, site: SiteConfig) -> list[ContentUnit]:
    """Enumerate every country linked from the index page."""
    session.navigate(site.index_url)
    units: list[ContentUnit] = []
    for link in session.find_all(site.unit_link_selector):
        units.append(
            ContentUnit(
                display_name=session.text(link).strip(),
                source_url=session.property(link, "href"),
            )
        )
    if not units:
        raise ExtractionError(f"No countries found on {site.index_url}")
    return units


def fetch_content_unit(session: Session, unit: ContentUnit, site: SiteConfig) -> list[PageRecord]:
    """Fetch every sub-page of a country.

    Args:
        session: Live browser session
        unit: The country to fetch
        site: Selectors of the mirrored site

    Returns:
        One PageRecord per table of contents item, the current page first
        where it appears unlinked, followed pages in discovery order

    Raises:
        SessionError: If any navigation or extraction fails; nothing partial is returned
    """
    session.navigate(unit.source_url)

    pages: list[PageRecord] = []
    links_to_follow: list[str] = []

    for item in session.find_all(site.toc_item_selector):
        links = session.find_all("a", within=item)
        if not links:
            pages.append(extract_page(session, site))
            continue
        if len(links) > 1:
            logger.warning(
                "Found %d links in a table of contents item on %s, picking first",
                len(links),
                unit.source_url,
            )
        links_to_follow.append(session.property(links[0], "href"))

    for link in links_to_follow:
        session.navigate(link)
        pages.append(extract_page(session, site))

    logger.debug("Fetched %d pages for %s", len(pages), unit.display_name)
    return pages


def extract_page(session: Session, site: SiteConfig) -> PageRecord:
    """Build a PageRecord from the page currently shown."""
    titles = session.find_all(site.title_selector)
    if not titles:
        raise ExtractionError(f"Error getting title: no element matches {site.title_selector!r}")
    blocks = session.find_all(site.body_selector)
    if not blocks:
        raise ExtractionError(f"Error getting text: no element matches {site.body_selector!r}")

    body = "\n\n".join(session.text(block) for block in blocks)
    return PageRecord(title=session.text(titles[0]).strip(), body=f"{body}\n")
