"""Circuit breaker pattern for fault tolerance.

Prevents the executor from hammering an unreachable cluster API by failing
fast after repeated transport failures.

States:
    CLOSED: Normal operation, requests pass through
    OPEN: Failing fast, requests rejected immediately
    HALF_OPEN: Testing if service recovered

Failures are counted over a rolling window: a failure older than
``failure_window`` seconds no longer counts toward ``failure_threshold``.

Example:
    >>> from executor_k8s.execution.circuit_breaker import CircuitBreaker
    >>>
    >>> breaker = CircuitBreaker(
    ...     failure_threshold=5,
    ...     failure_window=60.0,
    ...     recovery_timeout=30.0,
    ... )
    >>>
    >>> if breaker.allow_request():
    ...     try:
    ...         result = call_cluster_api()
    ...         breaker.record_success()
    ...     except httpx.TransportError as e:
    ...         breaker.record_failure(e)
    ...         raise
    ... else:
    ...     raise CircuitOpenError("Cluster API unavailable")
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from executor_k8s.core.errors import CircuitOpenError
from executor_k8s.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Rejecting requests
    HALF_OPEN = "half_open"  # Testing recovery


@dataclass
class CircuitStats:
    """Statistics for circuit breaker monitoring."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rejected_requests: int = 0
    state_changes: int = 0
    last_failure_time: datetime | None = None
    last_success_time: datetime | None = None
    last_state_change: datetime | None = None

    @property
    def failure_rate(self) -> float:
        """Calculate failure rate as percentage."""
        total = self.successful_requests + self.failed_requests
        if total == 0:
            return 0.0
        return (self.failed_requests / total) * 100


@dataclass
class CircuitBreaker:
    """Circuit breaker for fault tolerance.

    Attributes:
        name: Identifier for this circuit
        failure_threshold: Failures inside the window before opening
        failure_window: Seconds a failure keeps counting (None = forever)
        recovery_timeout: Seconds to wait before testing recovery
        success_threshold: Successes needed in half-open to close
        half_open_max_calls: Max concurrent calls in half-open state
    """

    name: str = "default"
    failure_threshold: int = 5
    failure_window: float | None = 60.0
    recovery_timeout: float = 30.0
    success_threshold: int = 1
    half_open_max_calls: int = 1

    # Internal state
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failures: deque = field(default_factory=deque, init=False)
    _success_count: int = field(default=0, init=False)
    _opened_at: datetime | None = field(default=None, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _stats: CircuitStats = field(default_factory=CircuitStats, init=False)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def stats(self) -> CircuitStats:
        """Get circuit statistics."""
        return self._stats

    @property
    def failure_count(self) -> int:
        """Failures currently inside the rolling window."""
        with self._lock:
            self._prune_failures(utcnow())
            return len(self._failures)

    def retry_after(self) -> float | None:
        """Seconds until an open circuit admits a trial call."""
        with self._lock:
            if self._state != CircuitState.OPEN or self._opened_at is None:
                return None
            elapsed = (utcnow() - self._opened_at).total_seconds()
            return max(self.recovery_timeout - elapsed, 0.0)

    def _prune_failures(self, now: datetime) -> None:
        if self.failure_window is None:
            return
        while self._failures and (now - self._failures[0]).total_seconds() > self.failure_window:
            self._failures.popleft()

    def _check_state_transition(self) -> None:
        """Check if state should transition based on timeout."""
        if self._state == CircuitState.OPEN and self._opened_at:
            elapsed = (utcnow() - self._opened_at).total_seconds()
            if elapsed >= self.recovery_timeout:
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        """Transition to a new state."""
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1
        self._stats.last_state_change = utcnow()

        if new_state == CircuitState.CLOSED:
            self._failures.clear()
            self._success_count = 0
            self._opened_at = None
        elif new_state == CircuitState.OPEN:
            self._opened_at = utcnow()
        elif new_state == CircuitState.HALF_OPEN:
            self._success_count = 0
            self._half_open_calls = 0

        logger.info(
            "circuit.state_change",
            circuit=self.name,
            old_state=old_state.value,
            new_state=new_state.value,
        )

    def allow_request(self) -> bool:
        """Check if a request should be allowed.

        Returns:
            True if request can proceed, False if circuit is open
        """
        with self._lock:
            self._check_state_transition()
            self._stats.total_requests += 1

            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                self._stats.rejected_requests += 1
                return False

            # Half-open: allow limited requests
            if self._half_open_calls < self.half_open_max_calls:
                self._half_open_calls += 1
                return True

            self._stats.rejected_requests += 1
            return False

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            self._stats.successful_requests += 1
            self._stats.last_success_time = utcnow()

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                self._half_open_calls = max(self._half_open_calls - 1, 0)
                if self._success_count >= self.success_threshold:
                    self._transition_to(CircuitState.CLOSED)

    def record_failure(self, error: Exception | None = None) -> None:
        """Record a failed request."""
        with self._lock:
            now = utcnow()
            self._failures.append(now)
            self._prune_failures(now)
            self._stats.failed_requests += 1
            self._stats.last_failure_time = now

            if self._state == CircuitState.CLOSED:
                if len(self._failures) >= self.failure_threshold:
                    self._transition_to(CircuitState.OPEN)

            elif self._state == CircuitState.HALF_OPEN:
                # Any failure in half-open reopens the circuit
                self._transition_to(CircuitState.OPEN)

    def release_half_open(self) -> None:
        """Give back a half-open trial slot without recording an outcome.

        Used when a trial call is cancelled before it completes.
        """
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._half_open_calls = max(self._half_open_calls - 1, 0)

    def reset(self) -> None:
        """Reset circuit to closed state."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)

    def force_open(self) -> None:
        """Force circuit to open state (for testing/maintenance)."""
        with self._lock:
            self._transition_to(CircuitState.OPEN)

    async def call_async(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        is_failure: Callable[[BaseException], bool] = lambda exc: True,
        **kwargs: Any,
    ) -> T:
        """Execute an async function through the circuit breaker.

        Exceptions for which ``is_failure`` returns False are re-raised
        but recorded as successes: the dependency answered.

        Raises:
            CircuitOpenError: If circuit is open
        """
        if not self.allow_request():
            raise CircuitOpenError(
                f"Circuit '{self.name}' is open, rejecting request",
                retry_after=self.retry_after(),
                context={"circuit": self.name},
            )

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            if is_failure(e):
                self.record_failure(e)
            else:
                self.record_success()
            raise
        except BaseException:
            # Cancelled: free the trial slot, record no outcome
            self.release_half_open()
            raise
        self.record_success()
        return result


__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CircuitStats",
    "utcnow",
]
