"""
Core domain models and reconciliation logic.

This package contains the data types, ledger handling and change
classification that are independent of git, the browser and the network.
"""

from .types import (
    ChangeEntry,
    ContentUnit,
    FeedLink,
    FullResync,
    Incremental,
    PageRecord,
    ReconciliationResult,
    validate_slug,
)
from .ledger import build_commit_message, recover_last_sync, recover_ledger
from .reconcile import detect_changes, has_duplicates

__all__ = [
    "ChangeEntry",
    "ContentUnit",
    "FeedLink",
    "FullResync",
    "Incremental",
    "PageRecord",
    "ReconciliationResult",
    "validate_slug",
    "build_commit_message",
    "recover_last_sync",
    "recover_ledger",
    "detect_changes",
    "has_duplicates",
]
