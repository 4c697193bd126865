"""
Reconciliation of the change feed against the sync ledger.

Decides whether the entries newer than the last synchronized time can be
replayed one by one, or whether the archive has to be rebuilt from scratch:
1. Every feed entry is new: the ledger is older than the feed horizon
2. Two new entries point at the same page: the feed was compacted or reordered
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from .types import ChangeEntry, FullResync, Incremental, ReconciliationResult


ALL_ENTRIES_NEW = "all entries new"
DUPLICATE_ENTRIES = "duplicate entries"


def filter_new_entries(entries: Sequence[ChangeEntry], last_sync: datetime) -> list[ChangeEntry]:
    """Return entries updated after last_sync, oldest first.

    The feed lists entries newest first, so the result is the reversed
    feed order restricted to new entries.
    """
    return [entry for entry in reversed(entries) if entry.updated_at > last_sync]


def has_duplicates(entries: Sequence[ChangeEntry]) -> bool:
    """Check whether two entries resolve to the same HTML page.

    Entries without an HTML link contribute no URL but are still counted,
    so such an entry also reports a collision.
    """
    urls = {entry.html_url for entry in entries if entry.html_url is not None}
    return len(urls) < len(entries)


def detect_changes(entries: Sequence[ChangeEntry], last_sync: datetime) -> ReconciliationResult:
    """Classify the feed relative to the last synchronized time.

    Args:
        entries: Feed entries in feed order (newest first)
        last_sync: Timestamp recovered from the archive's ledger

    Returns:
        FullResync when incremental replay cannot be trusted, otherwise
        Incremental with the new entries oldest first. An empty feed or a
        feed with nothing new yields an empty Incremental.
    """
    new_entries = filter_new_entries(entries, last_sync)
    if not new_entries:
        return Incremental(())
    if len(new_entries) == len(entries):
        return FullResync(ALL_ENTRIES_NEW)
    if has_duplicates(new_entries):
        return FullResync(DUPLICATE_ENTRIES)
    return Incremental(tuple(new_entries))
