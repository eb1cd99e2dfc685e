"""Retry with jittered exponential backoff for catalog requests.

Transient catalog failures (connection resets, 429, 5xx) are worth a short
wait; client errors such as 404 are not. ``with_retry`` retries only the
listed exception types, lets a ``should_retry`` predicate veto individual
failures, and re-raises the final exception unchanged once the attempts are
spent, so callers still see the real status code.

Usage::

    @with_retry(max_attempts=3, exceptions=(httpx.TransportError, CatalogError),
                should_retry=_is_transient)
    def _get_once(self, operation, path, params): ...
"""

from __future__ import annotations

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def backoff_seconds(attempt: int, base_seconds: float, max_seconds: float, jitter: bool) -> float:
    """Wait before retry number *attempt* (1-based): base * 2^(attempt-1), capped, ±25% jitter."""
    wait = min(base_seconds * 2 ** (attempt - 1), max_seconds)
    if jitter:
        wait *= random.uniform(0.75, 1.25)  # noqa: S311
    return wait


def with_retry(
    *,
    max_attempts: int = 3,
    base_seconds: float = 0.5,
    max_seconds: float = 8.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = (ConnectionError, TimeoutError),
    should_retry: Callable[[Exception], bool] | None = None,
) -> Callable[[F], F]:
    """Build a retrying decorator.

    Args:
        max_attempts: Attempts in total, the first one included.
        base_seconds: Wait before the first retry.
        max_seconds: Upper bound for any single wait.
        jitter: Spread waits by ±25% so parallel searches do not retry in lockstep.
        exceptions: Exception types eligible for a retry.
        should_retry: Optional veto; return ``False`` to re-raise immediately.

    Raises:
        ValueError: If *max_attempts* is below 1.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    give_up = attempt >= max_attempts or (
                        should_retry is not None and not should_retry(exc)
                    )
                    if give_up:
                        raise
                    wait = backoff_seconds(attempt, base_seconds, max_seconds, jitter)
                    logger.warning(
                        "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                        func.__name__,
                        attempt,
                        max_attempts,
                        exc,
                        wait,
                    )
                    time.sleep(wait)
                    attempt += 1

        return wrapper  # type: ignore[return-value]

    return decorator
