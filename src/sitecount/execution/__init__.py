"""Execution infrastructure for fault-tolerant remote calls.

- CircuitBreakerState: failure cool-down owned by each counter client
"""

from sitecount.execution.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitMetrics,
    CircuitState,
)

__all__ = [
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitMetrics",
    "CircuitState",
]
