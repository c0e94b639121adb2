"""Per-channel circuit breaker for notification providers."""

import time
from enum import Enum
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger()


class CircuitState(Enum):
    """Breaker positions."""

    CLOSED = "closed"  # sends go through
    OPEN = "open"  # provider failing, sends skipped
    HALF_OPEN = "half_open"  # one trial send in flight


class CircuitBreaker:
    """Stop hammering a failing provider.

    The notifier asks `allow()` before each send and reports back with
    `record_success()` / `record_failure()`. After `failure_threshold`
    consecutive failures the breaker trips; once `recovery_timeout` seconds
    have passed a single trial send is let through. A successful trial
    closes the breaker, a failed one trips it again.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 300.0,
        name: str = "channel",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._clock = clock
        self.consecutive_failures = 0
        self.state = CircuitState.CLOSED
        self._tripped_at: Optional[float] = None

    def allow(self) -> bool:
        """Whether a send may be attempted now."""
        if self.state is CircuitState.CLOSED:
            return True
        if self.state is CircuitState.HALF_OPEN:
            return False
        if self.seconds_until_retry() > 0:
            return False

        self.state = CircuitState.HALF_OPEN
        logger.info("circuit_half_open", circuit=self.name)
        return True

    def record_success(self) -> None:
        if self.state is not CircuitState.CLOSED:
            logger.info("circuit_closed", circuit=self.name)
        self.reset()

    def record_failure(self, error: str = "") -> None:
        self.consecutive_failures += 1
        trial_failed = self.state is CircuitState.HALF_OPEN
        if trial_failed or self.consecutive_failures >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self._tripped_at = self._clock()
            logger.warning(
                "circuit_opened",
                circuit=self.name,
                consecutive_failures=self.consecutive_failures,
                retry_in=self.recovery_timeout,
                error=error,
            )

    def seconds_until_retry(self) -> float:
        """Time left before a tripped breaker lets a trial through."""
        if self.state is not CircuitState.OPEN or self._tripped_at is None:
            return 0.0
        return max(0.0, self._tripped_at + self.recovery_timeout - self._clock())

    def reset(self) -> None:
        self.consecutive_failures = 0
        self.state = CircuitState.CLOSED
        self._tripped_at = None

    @property
    def is_open(self) -> bool:
        return self.state is CircuitState.OPEN

    def get_status(self) -> dict[str, Any]:
        return {
            "circuit": self.name,
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "threshold": self.failure_threshold,
            "retry_in": round(self.seconds_until_retry(), 1),
        }
