"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FeedConfig: Atom feed location and HTTP settings
- SiteConfig: Page locations and CSS selectors of the mirrored site
- BrowserConfig: Playwright browser session settings
- ArchiveConfig: Git archive location, remote and author identity
- RetryConfig: Attempt budget for retried operations
- PollConfig: Interval of continuous feed polling
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FeedConfig:
    """Configuration for fetching the change-notification feed.

    Attributes:
        url: Atom feed URL
        timeout_seconds: HTTP request timeout
        user_agent: HTTP User-Agent header string
        trust_env: Whether to respect system proxy settings
    """

    url: str = "https://www.gov.uk/foreign-travel-advice.atom"
    timeout_seconds: float = 30.0
    user_agent: str = "fco-backup/0.1 (+https://github.com/fcobackup/fco-backup)"
    trust_env: bool = True


@dataclass
class SiteConfig:
    """Locations and selectors of the mirrored publication.

    Attributes:
        index_url: Page listing every country
        unit_link_selector: Links to country pages on the index page
        toc_item_selector: Table of contents items on a country page
        title_selector: Heading of a sub-page
        body_selector: Content blocks of a sub-page
    """

    index_url: str = "https://www.gov.uk/foreign-travel-advice"
    unit_link_selector: str = ".countries-list a"
    toc_item_selector: str = 'nav[aria-label="Travel advice pages"] li'
    title_selector: str = ".part-title"
    body_selector: str = ".govuk-govspeak"


@dataclass
class BrowserConfig:
    """Configuration for the Playwright browser session.

    Attributes:
        headless: Run Chromium without a window
        args: Extra Chromium command line arguments
        navigation_timeout_seconds: Timeout applied to page navigations
        cdp_endpoint: Connect to an existing browser over CDP instead of launching one
    """

    headless: bool = True
    args: list[str] = field(default_factory=lambda: ["--no-sandbox"])
    navigation_timeout_seconds: float = 60.0
    cdp_endpoint: str | None = None


@dataclass
class ArchiveConfig:
    """Configuration for the git archive.

    Attributes:
        path: Working tree of the archive
        remote_url: Cloned into path when path does not exist
        remote: Remote pushed to
        branch: Branch pushed to
        content_dir: Directory inside the archive holding one folder per country
        author_name: Commit author name
        author_email: Commit author email
        history_depth: How many recent commits to scan for the sync ledger
        resync_without_ledger: Fall back to a full resync when no ledger is found
        push: Whether to push after committing
    """

    path: str = "fco-backup"
    remote_url: str | None = "git@github.com:fcobackup/fco-backup.git"
    remote: str = "origin"
    branch: str = "master"
    content_dir: str = "countries"
    author_name: str = "FCO Backup"
    author_email: str = "ukfcobackup@gmail.com"
    history_depth: int = 1
    resync_without_ledger: bool = False
    push: bool = True


@dataclass
class RetryConfig:
    """Configuration for retried operations.

    Attributes:
        attempts: Total attempts per operation, including the first
        backoff_seconds: Linear backoff step between attempts
    """

    attempts: int = 3
    backoff_seconds: float = 0.0


@dataclass
class PollConfig:
    """Configuration for continuous polling.

    Attributes:
        interval_seconds: Delay between the end of one cycle and the start of the next
    """

    interval_seconds: float = 300.0


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        directory: Directory for the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "fco-backup.jsonl"
    directory: str = "logs"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    feed: FeedConfig = field(default_factory=FeedConfig)
    site: SiteConfig = field(default_factory=SiteConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def default_config() -> AppConfig:
    return AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults.

    Environment variables override file values where noted
    (FCO_BACKUP_CDP_ENDPOINT for browser.cdp_endpoint).
    """
    if not path:
        cfg = default_config()
    else:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        cfg = _merge_config(default_config(), raw)

    endpoint = os.getenv("FCO_BACKUP_CDP_ENDPOINT")
    if endpoint:
        cfg.browser.cdp_endpoint = endpoint
    return cfg


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data or not isinstance(value, dict):
            continue
        data[key].update({k: v for k, v in value.items() if k in data[key]})
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        feed=FeedConfig(**data["feed"]),
        site=SiteConfig(**data["site"]),
        browser=BrowserConfig(**data["browser"]),
        archive=ArchiveConfig(**data["archive"]),
        retry=RetryConfig(**data["retry"]),
        poll=PollConfig(**data["poll"]),
        logging=LoggingConfig(**data["logging"]),
    )
