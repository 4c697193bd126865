"""
Bounded retry with an optional recovery hook.

Each retried call site gets its own budget. Between a failed attempt and the
next one the recovery hook runs (typically invalidating the browser session);
a failing hook is logged and ignored.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from .errors import (
    LedgerRecoveryError,
    PersistenceError,
    RetryExhaustedError,
    ValidationError,
)


T = TypeVar("T")

DEFAULT_ATTEMPTS = 3

# Raised straight through; retrying cannot fix them.
NON_RETRYABLE: tuple[type[Exception], ...] = (
    ValidationError,
    LedgerRecoveryError,
    PersistenceError,
)

logger = logging.getLogger(__name__)


def run_with_retry(
    action: Callable[[], T],
    recover: Callable[[], None] | None = None,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    backoff_seconds: float = 0.0,
    description: str = "action",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``action`` until it succeeds or the attempt budget is spent.

    Args:
        action: Zero-argument callable to attempt
        recover: Optional zero-argument callable run between attempts
        attempts: Total number of attempts, including the first
        backoff_seconds: Linear backoff step; attempt n waits n * backoff_seconds
        description: Name used in log lines and the aggregate error
        sleep: Sleep function, replaceable in tests

    Returns:
        The value returned by the first successful attempt

    Raises:
        RetryExhaustedError: With one underlying error per failed attempt
        ValidationError, LedgerRecoveryError, PersistenceError: Immediately,
            without further attempts
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    errors: list[Exception] = []
    for attempt in range(1, attempts + 1):
        try:
            return action()
        except NON_RETRYABLE:
            raise
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
            if attempt == attempts:
                break
            logger.warning(
                "Retrying %s after attempt %d/%d failed: %s: %s",
                description,
                attempt,
                attempts,
                type(exc).__name__,
                exc,
            )
            if recover is not None:
                _run_recovery(recover, description)
            if backoff_seconds > 0:
                sleep(backoff_seconds * attempt)

    raise RetryExhaustedError(description, errors) from errors[-1]


def _run_recovery(recover: Callable[[], None], description: str) -> None:
    try:
        recover()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Recovery for %s failed: %s: %s", description, type(exc).__name__, exc)
