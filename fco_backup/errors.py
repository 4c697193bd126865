"""
Error taxonomy for the travel advice mirror.

Errors fall into five families:
- TransportError: feed and network failures, eligible for retry
- SessionError: the browser session failed and should be recreated before retrying
- ValidationError: unsafe slugs, malformed entries; never retried
- LedgerRecoveryError: no sync marker could be recovered from history
- PersistenceError: git stage/commit/push failures; never retried
"""

from __future__ import annotations


class FcoBackupError(Exception):
    """Base class for all errors raised by fco_backup."""


class TransportError(FcoBackupError):
    """A network call failed in a way that may succeed on a later attempt."""


class FeedError(TransportError):
    """The Atom feed could not be fetched or parsed."""


class SessionError(FcoBackupError):
    """The browser session is unusable or a session call failed."""


class ExtractionError(SessionError):
    """A page did not contain the elements needed to build a PageRecord."""


class ValidationError(FcoBackupError):
    """Input failed a safety or shape check."""


class UnsafeSlugError(ValidationError):
    """A derived directory name is not safe to use on the filesystem."""

    def __init__(self, slug: str):
        super().__init__(f"Bad path: {slug!r}")
        self.slug = slug


class LedgerRecoveryError(FcoBackupError):
    """No sync ledger marker was found in the archive's recent history."""


class PersistenceError(FcoBackupError):
    """A git operation against the archive failed."""

    def __init__(self, message: str, stderr: str | None = None):
        super().__init__(message if not stderr else f"{message}: {stderr.strip()}")
        self.stderr = stderr


class RetryExhaustedError(FcoBackupError):
    """Every attempt of a retried action failed.

    Attributes:
        description: Human readable name of the action
        errors: One exception per attempt, in attempt order
    """

    def __init__(self, description: str, errors: list[BaseException]):
        details = "; ".join(f"{type(err).__name__}: {err}" for err in errors)
        super().__init__(f"{description}: giving up after {len(errors)} attempts: [{details}]")
        self.description = description
        self.errors = list(errors)
