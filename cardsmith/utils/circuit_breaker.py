"""Circuit breaker guarding model provider calls.

After ``failure_threshold`` consecutive failures the circuit opens and calls are
refused until ``timeout_seconds`` have passed. The circuit then admits a single
trial request at a time (half-open). ``success_threshold`` successful trial requests
close it again and a failed one reopens it.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """States of the circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Thread-safe three-state circuit breaker."""

    name: str = "llm"
    failure_threshold: int = 5
    success_threshold: int = 2
    timeout_seconds: float = 60.0
    enabled: bool = True

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failures: int = field(default=0, init=False)
    _trial_successes: int = field(default=0, init=False)
    _opened_at: float | None = field(default=None, init=False)
    _trial_in_flight: bool = field(default=False, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN to HALF_OPEN once the timeout elapsed."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._opened_at is not None:
                if time.time() - self._opened_at >= self.timeout_seconds:
                    logger.info("Circuit breaker '%s': OPEN -> HALF_OPEN", self.name)
                    self._state = CircuitState.HALF_OPEN
                    self._trial_successes = 0
                    self._trial_in_flight = False
            return self._state

    def allow_request(self) -> bool:
        """Return True if a call may proceed."""
        if not self.enabled:
            return True

        with self._lock:
            state = self.state
            if state == CircuitState.CLOSED:
                return True
            if state == CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return True
            logger.warning("Circuit breaker '%s': rejecting request (%s)", self.name, state.value)
            return False

    def record_success(self) -> None:
        """Record a successful call."""
        if not self.enabled:
            return

        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._trial_in_flight = False
                self._trial_successes += 1
                if self._trial_successes >= self.success_threshold:
                    logger.info("Circuit breaker '%s': HALF_OPEN -> CLOSED", self.name)
                    self._state = CircuitState.CLOSED
                    self._failures = 0
                    self._trial_successes = 0
            else:
                self._failures = 0

    def record_failure(self, error: Exception | None = None) -> None:
        """Record a failed call, opening the circuit when the threshold is reached."""
        if not self.enabled:
            return

        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.warning(
                    "Circuit breaker '%s': trial request failed, HALF_OPEN -> OPEN (%s)", self.name, error
                )
                self._trial_in_flight = False
                self._state = CircuitState.OPEN
                self._opened_at = time.time()
                return

            self._failures += 1
            logger.debug(
                "Circuit breaker '%s': failure %d/%d (%s)",
                self.name,
                self._failures,
                self.failure_threshold,
                error,
            )
            if self._state == CircuitState.CLOSED and self._failures >= self.failure_threshold:
                logger.warning("Circuit breaker '%s': CLOSED -> OPEN", self.name)
                self._state = CircuitState.OPEN
                self._opened_at = time.time()

    def reset(self) -> None:
        """Return to the initial closed state."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failures = 0
            self._trial_successes = 0
            self._opened_at = None
            self._trial_in_flight = False

    def time_until_half_open(self) -> float:
        """Seconds until an open circuit admits a trial request (0 when not open)."""
        with self._lock:
            if self.state != CircuitState.OPEN or self._opened_at is None:
                return 0.0
            return max(0.0, self.timeout_seconds - (time.time() - self._opened_at))

    def get_status(self) -> dict[str, Any]:
        """Snapshot of the breaker for logging and diagnostics."""
        with self._lock:
            return {
                "name": self.name,
                "enabled": self.enabled,
                "state": self.state.value,
                "failure_count": self._failures,
                "failure_threshold": self.failure_threshold,
                "time_until_half_open": self.time_until_half_open(),
            }


_global_circuit_breaker: CircuitBreaker | None = None
_circuit_breaker_lock = threading.Lock()


def get_circuit_breaker(
    failure_threshold: int = 5,
    success_threshold: int = 2,
    timeout_seconds: float = 60.0,
    enabled: bool = True,
) -> CircuitBreaker:
    """Get or lazily create the process-wide breaker for model calls.

    Arguments only take effect on the call that creates the breaker.
    """
    global _global_circuit_breaker

    if _global_circuit_breaker is None:
        with _circuit_breaker_lock:
            if _global_circuit_breaker is None:
                _global_circuit_breaker = CircuitBreaker(
                    name="llm",
                    failure_threshold=failure_threshold,
                    success_threshold=success_threshold,
                    timeout_seconds=timeout_seconds,
                    enabled=enabled,
                )
    return _global_circuit_breaker


def reset_global_circuit_breaker() -> None:
    """Drop the process-wide breaker so the next call creates a fresh one."""
    global _global_circuit_breaker
    with _circuit_breaker_lock:
        _global_circuit_breaker = None
