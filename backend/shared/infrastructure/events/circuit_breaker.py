"""
Circuit breaker for best-effort outbound calls.

Redis fan-out and Expo push delivery both sit behind one. When a dependency
keeps failing, callers skip it immediately instead of waiting out a socket
timeout on every order change.
"""

from __future__ import annotations

import random
import threading
import time
from enum import Enum

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure breaker.

    CLOSED: calls pass; `failure_threshold` failures in a row open it.
    OPEN: calls are refused until `recovery_timeout` seconds have elapsed.
    HALF_OPEN: up to `half_open_max_calls` probes; one success closes the
    circuit, one failure reopens it.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 1,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0
        self._probes = 0
        self._rejected = 0

    @property
    def state(self) -> CircuitState:
        return self._state

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = time.monotonic()
        logger.error(
            "Circuit opened",
            breaker=self.name,
            consecutive_failures=self._consecutive_failures,
        )

    def can_execute(self) -> bool:
        """False while the circuit refuses calls."""
        with self._lock:
            if self._state is CircuitState.OPEN:
                if time.monotonic() - self._opened_at < self.recovery_timeout:
                    self._rejected += 1
                    return False
                self._state = CircuitState.HALF_OPEN
                self._probes = 0
                logger.info("Circuit half-open, probing", breaker=self.name)

            if self._state is CircuitState.HALF_OPEN:
                if self._probes >= self.half_open_max_calls:
                    self._rejected += 1
                    return False
                self._probes += 1
            return True

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            if self._state is CircuitState.HALF_OPEN:
                self._open()
            elif (
                self._state is CircuitState.CLOSED
                and self._consecutive_failures >= self.failure_threshold
            ):
                self._open()

    def record_success(self) -> None:
        with self._lock:
            if self._state is not CircuitState.CLOSED:
                logger.info("Circuit closed", breaker=self.name)
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._probes = 0
            self._rejected = 0

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._consecutive_failures,
                "rejected_count": self._rejected,
            }


# =============================================================================
# Process-wide breakers
# =============================================================================

_breakers: dict[str, CircuitBreaker] = {}
_breakers_lock = threading.Lock()


def _shared_breaker(name: str, failure_threshold: int) -> CircuitBreaker:
    with _breakers_lock:
        breaker = _breakers.get(name)
        if breaker is None:
            breaker = _breakers[name] = CircuitBreaker(name, failure_threshold=failure_threshold)
        return breaker


def get_event_circuit_breaker() -> CircuitBreaker:
    """Breaker guarding Redis PUBLISH."""
    return _shared_breaker("redis_publish", settings.redis_publish_max_retries + 2)


def get_push_circuit_breaker() -> CircuitBreaker:
    """Breaker guarding the Expo push API."""
    return _shared_breaker("push_provider", 5)


def calculate_retry_delay_with_jitter(attempt: int, base_delay: float = 0.5) -> float:
    """Full-jitter exponential backoff for 0-indexed `attempt`, capped at 10s."""
    ceiling = min(base_delay * 2 ** attempt, 10.0)
    return random.uniform(base_delay, max(base_delay, ceiling))
