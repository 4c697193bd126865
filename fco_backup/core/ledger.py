"""Sync ledger embedded in commit messages.

The archive keeps no side file recording how far it is synchronized. Instead
every commit that records a fetch ends with a marker line

    Fetched at: 2026-10-18T09:15:00Z

and the next run recovers the newest such marker from git history.
"""

from __future__ import annotations

from datetime import datetime, timezone
import re
from typing import Iterable

from ..errors import LedgerRecoveryError


LEDGER_PREFIX = "Fetched at: "
LEDGER_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_RFC3339 = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})?$"
)


def format_ledger_line(timestamp: datetime) -> str:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return f"{LEDGER_PREFIX}{timestamp.astimezone(timezone.utc).strftime(LEDGER_FORMAT)}"


def build_commit_message(reason: str, now: datetime | None = None) -> str:
    """Build a commit message whose last paragraph is the ledger marker."""
    if now is None:
        now = datetime.now(timezone.utc)
    return f"{reason}\n\n{format_ledger_line(now)}"


def parse_rfc3339(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Accepts a ``Z`` suffix or a numeric offset and any number of fractional
    digits (truncated to microseconds). Values without an offset are UTC.

    Raises:
        ValueError: If the text is not an RFC 3339 timestamp
    """
    match = _RFC3339.match(text.strip())
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {text!r}")
    date, clock, fraction, offset = match.groups()
    if fraction:
        clock = f"{clock}.{fraction[:6].ljust(6, '0')}"
    if offset is None or offset in ("Z", "z"):
        offset = "+00:00"
    return datetime.fromisoformat(f"{date}T{clock}{offset}")


def parse_ledger_line(line: str) -> datetime | None:
    if not line.startswith(LEDGER_PREFIX):
        return None
    try:
        parsed = parse_rfc3339(line[len(LEDGER_PREFIX):])
    except ValueError:
        return None
    return parsed.astimezone(timezone.utc)


def recover_ledger(messages: Iterable[str]) -> datetime | None:
    """Return the newest ledger timestamp found in commit messages.

    Args:
        messages: Commit messages, newest first

    Returns:
        The timestamp of the first parseable marker, scanning each message
        from its last line upwards, or None if no message carries one
    """
    for message in messages:
        for line in reversed(message.splitlines()):
            timestamp = parse_ledger_line(line)
            if timestamp is not None:
                return timestamp
    return None


def recover_last_sync(archive, depth: int) -> datetime:
    """Recover the last synchronized time from the archive's recent history.

    Raises:
        LedgerRecoveryError: If none of the last ``depth`` commits has a marker
    """
    timestamp = recover_ledger(archive.read_history(depth))
    if timestamp is None:
        raise LedgerRecoveryError(
            f"No '{LEDGER_PREFIX.strip()}' marker in the last {depth} commits"
        )
    return timestamp
