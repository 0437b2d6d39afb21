"""Circuit breaker used as the counter client's failure cool-down.

After the remote counter fails outright, further calls are rejected
locally for a recovery window instead of paying for another slow failing
round trip on every page load.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service recently failed, requests are rejected immediately
- HALF_OPEN: Recovery window elapsed, requests probe the service

Transitions:
- CLOSED → OPEN: After failure_threshold consecutive failures
- OPEN → HALF_OPEN: After recovery_timeout seconds
- HALF_OPEN → CLOSED: After success_threshold consecutive successes
- HALF_OPEN → OPEN: On any failure

The state belongs to one breaker instance and time comes from an injected
clock, so independent clients never share a cool-down.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import structlog

logger = structlog.get_logger()


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for a circuit breaker."""

    failure_threshold: int = 1  # Failures before opening
    success_threshold: int = 1  # Successes to close from half-open
    recovery_timeout: float = 600.0  # Seconds before probing again


@dataclass
class CircuitMetrics:
    """Metrics for a circuit breaker."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    last_failure_time: float | None = None
    last_success_time: float | None = None
    state_changed_at: float = 0.0

    def record_success(self, now: float) -> None:
        """Record a successful call."""
        self.total_calls += 1
        self.successful_calls += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0
        self.last_success_time = now

    def record_failure(self, now: float) -> None:
        """Record a failed call."""
        self.total_calls += 1
        self.failed_calls += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0
        self.last_failure_time = now

    def record_rejection(self) -> None:
        """Record a rejected call (circuit open)."""
        self.rejected_calls += 1


@dataclass
class CircuitBreakerState:
    """State of a circuit breaker."""

    circuit_id: str
    state: CircuitState = CircuitState.CLOSED
    config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    metrics: CircuitMetrics = field(default_factory=CircuitMetrics)
    clock: Callable[[], float] = time.monotonic

    def should_allow_request(self) -> bool:
        """Check if a request should be allowed through.

        Returns:
            True if request should proceed.
        """
        if self.state == CircuitState.OPEN:
            if self.seconds_until_retry() > 0:
                return False
            self._transition_to(CircuitState.HALF_OPEN)

        return True

    def seconds_until_retry(self) -> float:
        """Seconds left in the recovery window (0 when not open)."""
        if self.state != CircuitState.OPEN:
            return 0.0
        elapsed = self.clock() - self.metrics.state_changed_at
        return max(0.0, self.config.recovery_timeout - elapsed)

    def record_success(self) -> None:
        """Record a successful request."""
        self.metrics.record_success(self.clock())

        if self.state == CircuitState.HALF_OPEN:
            if self.metrics.consecutive_successes >= self.config.success_threshold:
                self._transition_to(CircuitState.CLOSED)

    def record_failure(self) -> None:
        """Record a failed request."""
        self.metrics.record_failure(self.clock())

        if self.state == CircuitState.CLOSED:
            if self.metrics.consecutive_failures >= self.config.failure_threshold:
                self._transition_to(CircuitState.OPEN)

        elif self.state == CircuitState.HALF_OPEN:
            # Any failure in half-open returns to open
            self._transition_to(CircuitState.OPEN)

    def reset(self) -> None:
        """Close the circuit and clear its metrics."""
        self.state = CircuitState.CLOSED
        self.metrics = CircuitMetrics(state_changed_at=self.clock())

    def _transition_to(self, new_state: CircuitState) -> None:
        """Transition to a new state.

        Args:
            new_state: New circuit state.
        """
        old_state = self.state
        self.state = new_state
        self.metrics.state_changed_at = self.clock()

        logger.info(
            "Circuit breaker state transition",
            circuit_id=self.circuit_id,
            old_state=old_state.value,
            new_state=new_state.value,
            consecutive_failures=self.metrics.consecutive_failures,
            recovery_timeout=self.config.recovery_timeout,
        )
