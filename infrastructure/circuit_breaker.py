"""Circuit breaker guarding the music catalog.

A pool build fans out one search per genre/decade term. If the catalog is
down, each of those searches would burn its full retry budget before the
request degrades. The breaker counts consecutive failed calls across all
requests and, past a threshold, stops calling the catalog for a while.

States::

    CLOSED ──(failure_threshold consecutive failures)──→ OPEN
    OPEN ──(reset_timeout_seconds elapsed, next call)──→ HALF_OPEN
    HALF_OPEN ──(success_threshold trial successes)──→ CLOSED
    HALF_OPEN ──(any failure)──→ OPEN

While OPEN every call raises ``CircuitOpenError`` without touching the
catalog. While HALF_OPEN a single trial call runs at a time and concurrent
callers are rejected the same way. The pool builder treats that like any
other per-term failure; the routes map it to 503 when it hits a call the
request cannot do without.

Usage::

    breaker = CircuitBreaker(name="apple_music", failure_threshold=5)
    songs = breaker.call(client.search, "Pop 1990s", 50)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from infrastructure.metrics import record_circuit_rejected, record_circuit_trip

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """The breaker refused to call the catalog.

    Args:
        name: Breaker name.
        reset_in_seconds: Roughly how long until a trial call is allowed.
    """

    def __init__(self, name: str, reset_in_seconds: float) -> None:
        self.name = name
        self.reset_in_seconds = reset_in_seconds
        super().__init__(
            f"Circuit '{name}' is OPEN; catalog calls suspended for ~{reset_in_seconds:.0f}s"
        )


@dataclass
class CircuitStats:
    """Lifetime counters for one breaker."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    transitions: list[tuple[str, float]] = field(default_factory=list)


class CircuitBreaker:
    """
    Thread-safe breaker shared by every catalog call of the process.

    The wrapped call runs outside the lock, so concurrent searches from
    one pool build are not serialized.

    Args:
        name: Used in logs, ``CircuitOpenError`` and metric labels.
        failure_threshold: Consecutive failures that open the circuit.
        reset_timeout_seconds: How long to stay OPEN before probing.
        success_threshold: HALF_OPEN successes needed to close again.
        exceptions: Exception types counted as failures. Others (e.g. a
            ``ValueError`` for a bad argument) propagate untouched.
        should_count: Optional veto; return ``False`` for an exception that
            shows the catalog answered (an HTTP 404, say) so it is not
            counted as a failure.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout_seconds: float = 30.0,
        success_threshold: int = 1,
        exceptions: tuple[type[Exception], ...] = (Exception,),
        should_count: Callable[[Exception], bool] | None = None,
    ) -> None:
        self.name = name
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout_seconds
        self._success_threshold = success_threshold
        self._counted = exceptions
        self._should_count = should_count

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._trial_successes = 0
        self._trial_in_flight = False
        self._opened_at: float | None = None
        self._last_failure_at: float | None = None
        self.stats = CircuitStats()

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state is CircuitState.OPEN

    def _move_to(self, new_state: CircuitState) -> None:
        # Caller holds the lock
        if new_state is self._state:
            return
        logger.warning("Circuit '%s': %s -> %s", self.name, self._state.value, new_state.value)
        self._state = new_state
        self.stats.transitions.append((new_state.value, time.time()))
        if new_state is CircuitState.OPEN:
            self._opened_at = time.monotonic()
            record_circuit_trip(self.name)
        elif new_state is CircuitState.HALF_OPEN:
            self._trial_successes = 0

    def _seconds_until_trial(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(0.0, self._reset_timeout - (time.monotonic() - self._opened_at))

    def _admit(self) -> bool:
        """Count the call and decide whether it may reach the catalog.

        Returns ``True`` when the call is the single HALF_OPEN trial.
        """
        with self._lock:
            self.stats.total_calls += 1
            if self._state is CircuitState.CLOSED:
                return False
            wait = self._seconds_until_trial() if self._state is CircuitState.OPEN else 0.0
            if wait <= 0.0 and not self._trial_in_flight:
                self._move_to(CircuitState.HALF_OPEN)
                self._trial_in_flight = True
                return True
            self.stats.rejected_calls += 1
        record_circuit_rejected(self.name)
        raise CircuitOpenError(self.name, wait)

    def _counts_as_failure(self, exc: Exception) -> bool:
        if not isinstance(exc, self._counted):
            return False
        return self._should_count is None or self._should_count(exc)

    def _record_success(self, trial: bool) -> None:
        with self._lock:
            if trial:
                self._trial_in_flight = False
            self.stats.successful_calls += 1
            self._consecutive_failures = 0
            if self._state is CircuitState.HALF_OPEN:
                self._trial_successes += 1
                if self._trial_successes >= self._success_threshold:
                    self._move_to(CircuitState.CLOSED)
                    logger.info("Circuit '%s': catalog reachable again", self.name)

    def _record_failure(self, exc: Exception, trial: bool) -> None:
        with self._lock:
            if trial:
                self._trial_in_flight = False
            self.stats.failed_calls += 1
            self._consecutive_failures += 1
            self._last_failure_at = time.monotonic()
            if self._state is CircuitState.HALF_OPEN:
                self._move_to(CircuitState.OPEN)
            elif (
                self._state is CircuitState.CLOSED
                and self._consecutive_failures >= self._failure_threshold
            ):
                logger.error(
                    "Circuit '%s' opened after %d consecutive failures, last: %s",
                    self.name,
                    self._consecutive_failures,
                    exc,
                )
                self._move_to(CircuitState.OPEN)

    def _release_trial(self, trial: bool) -> None:
        if trial:
            with self._lock:
                self._trial_in_flight = False

    # -- public API --------------------------------------------------------

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``func(*args, **kwargs)`` unless the circuit is open.

        While HALF_OPEN only one trial call is in flight at a time; other
        callers are rejected until it finishes.

        Raises:
            CircuitOpenError: The circuit is OPEN and not yet due for a trial,
                or a HALF_OPEN trial is already running.
            Exception: Whatever *func* raises, re-raised unchanged.
        """
        trial = self._admit()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            if self._counts_as_failure(exc):
                self._record_failure(exc, trial)
            else:
                self._release_trial(trial)
            raise
        self._record_success(trial)
        return result

    def reset(self) -> None:
        """Close the circuit and forget recent failures."""
        with self._lock:
            self._consecutive_failures = 0
            self._trial_in_flight = False
            self._move_to(CircuitState.CLOSED)
            self._opened_at = None

    def status(self) -> dict[str, Any]:
        """Snapshot for the ``/health/catalog`` endpoint."""
        with self._lock:
            last_failure_ago = (
                round(time.monotonic() - self._last_failure_at, 1)
                if self._last_failure_at is not None
                else None
            )
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._consecutive_failures,
                "failure_threshold": self._failure_threshold,
                "reset_timeout_seconds": self._reset_timeout,
                "seconds_until_trial": round(self._seconds_until_trial(), 1)
                if self._state is CircuitState.OPEN
                else None,
                "last_failure_ago_seconds": last_failure_ago,
                "stats": {
                    "total": self.stats.total_calls,
                    "success": self.stats.successful_calls,
                    "failed": self.stats.failed_calls,
                    "rejected": self.stats.rejected_calls,
                },
            }
