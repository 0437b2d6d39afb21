"""Tests for the circuit breaker state machine."""

from sitecount.execution.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitState,
)


def make_breaker(clock, **config):
    return CircuitBreakerState(
        circuit_id="counter.test",
        config=CircuitBreakerConfig(**config),
        clock=clock,
    )


class TestCircuitBreakerState:
    """Tests for CircuitBreakerState transitions."""

    def test_starts_closed(self, clock):
        breaker = make_breaker(clock)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.should_allow_request() is True
        assert breaker.seconds_until_retry() == 0.0

    def test_opens_after_threshold(self, clock):
        """Consecutive failures at the threshold open the circuit."""
        breaker = make_breaker(clock, failure_threshold=2, recovery_timeout=30)

        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert breaker.should_allow_request() is False

    def test_success_resets_consecutive_failures(self, clock):
        breaker = make_breaker(clock, failure_threshold=2)

        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.metrics.consecutive_failures == 1

    def test_half_open_after_timeout(self, clock):
        """After the recovery window, one probe is let through."""
        breaker = make_breaker(clock, recovery_timeout=30)
        breaker.record_failure()

        clock.advance(29)
        assert breaker.should_allow_request() is False
        assert breaker.seconds_until_retry() == 1

        clock.advance(1)
        assert breaker.should_allow_request() is True
        assert breaker.state == CircuitState.HALF_OPEN

    def test_half_open_success_closes(self, clock):
        breaker = make_breaker(clock, recovery_timeout=30)
        breaker.record_failure()
        clock.advance(30)
        breaker.should_allow_request()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED

    def test_half_open_failure_reopens(self, clock):
        breaker = make_breaker(clock, recovery_timeout=30)
        breaker.record_failure()
        clock.advance(30)
        breaker.should_allow_request()

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.seconds_until_retry() == 30

    def test_reset(self, clock):
        breaker = make_breaker(clock)
        breaker.record_failure()

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.metrics.failed_calls == 0
        assert breaker.should_allow_request() is True
