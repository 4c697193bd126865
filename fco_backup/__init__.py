"""
FCO Backup - incremental git mirror of the foreign travel advice pages.

This package reconciles the travel advice Atom feed against the sync ledger
kept in the archive's commit messages, fetches changed countries through a
headless browser, and commits them to a git repository.

Main entry point is the CLI via the `fco-backup` command.

Example:
    $ fco-backup --git-repo ./fco-backup poll-feed-once
"""

__all__ = [
    "__version__",
    "ChangeEntry",
    "ContentUnit",
    "PageRecord",
    "FullResync",
    "Incremental",
    "detect_changes",
    "recover_ledger",
    "run_with_retry",
    "SessionHandle",
]
__version__ = "0.1.0"

from .core.types import ChangeEntry, ContentUnit, FullResync, Incremental, PageRecord
from .core.reconcile import detect_changes
from .core.ledger import recover_ledger
from .retry import run_with_retry
from .session import SessionHandle
