"""Remote counter repository.

Wraps a namespaced increment/read counter API (counterapi.dev v1 style):

    GET {endpoint}/{namespace}/{key}/up   -> {"count": <new value>, ...}
    GET {endpoint}/{namespace}/{key}/     -> {"count": <value>, ...}

Counters are created lazily by the first increment, so reading a key that
was never hit is routine and answers with a 4xx. Endpoints are tried in
order; only transport errors and 5xx answers fall through to the next one.
When every endpoint fails, the breaker opens and calls are rejected
locally for the cool-down window.
"""

import time
from typing import Any, Callable
from urllib.parse import quote

import httpx
import structlog

from sitecount.execution.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerState,
)
from sitecount.utils.exceptions import CounterCooldownError, CounterUnavailableError

logger = structlog.get_logger()

DEFAULT_ENDPOINTS = ("https://api.counterapi.dev/v1",)
DEFAULT_TIMEOUT = 5.0
DEFAULT_COOLDOWN_SECONDS = 10 * 60

# Every call must reach the origin, never an intermediate cache
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}

# Payload fields holding the counter value, in lookup order
VALUE_FIELDS = ("count", "value")


def extract_count(payload: Any) -> int:
    """Pull a non-negative integer counter value out of a JSON payload."""
    if not isinstance(payload, dict):
        return 0
    for name in VALUE_FIELDS:
        raw = payload.get(name)
        if raw is None or isinstance(raw, bool):
            continue
        try:
            return max(0, int(raw))
        except (TypeError, ValueError):
            continue
    return 0


class CounterRepository:
    """Async client for the remote key-value counter.

    Example:
        async with CounterRepository("my_site") as counter:
            await counter.increment("site_total_views_v2")
            total = await counter.read("site_total_views_v2")
    """

    def __init__(
        self,
        namespace: str,
        endpoints: list[str] | tuple[str, ...] | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the counter repository.

        Args:
            namespace: Fixed identifier scoping every key of this deployment.
            endpoints: Ordered base URLs; later ones are fallbacks.
            timeout: Per-request timeout in seconds.
            cooldown_seconds: How long to suppress remote calls after a
                total failure. 0 disables the cool-down.
            clock: Monotonic time source for the cool-down.
            http_client: Optional shared client (for testing).
        """
        endpoints = list(DEFAULT_ENDPOINTS if endpoints is None else endpoints)
        if not endpoints:
            raise ValueError("At least one counter endpoint is required")

        self.namespace = namespace
        self.endpoints = [endpoint.rstrip("/") for endpoint in endpoints]
        self.timeout = timeout
        self.breaker = CircuitBreakerState(
            circuit_id=f"counter.{namespace}",
            config=CircuitBreakerConfig(recovery_timeout=max(0.0, float(cooldown_seconds))),
            clock=clock,
        )
        self._client = http_client
        self._owns_client = http_client is None
        self.logger = logger.bind(service="counter_repository", namespace=namespace)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=NO_CACHE_HEADERS)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this repository created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CounterRepository":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def increment(self, key: str) -> int:
        """Increment a counter and return its new value.

        Args:
            key: Counter key.

        Returns:
            The value after the increment.

        Raises:
            CounterCooldownError: If remote calls are suppressed.
            CounterUnavailableError: If every endpoint failed.
        """
        payload = await self._request(self._key_path(key, "up"), key)
        if payload is None:
            self.logger.warning("Counter increment was not accepted", key=key)
        return extract_count(payload)

    async def fetch(self, key: str) -> int:
        """Read a counter, surfacing total unavailability.

        A key that does not exist yet reads as 0.

        Raises:
            CounterCooldownError: If remote calls are suppressed.
            CounterUnavailableError: If every endpoint failed.
        """
        payload = await self._request(self._key_path(key, ""), key)
        return extract_count(payload)

    async def read(self, key: str) -> int:
        """Read a counter, returning 0 on any failure.

        Safe to call speculatively, before anything was ever counted.
        """
        try:
            return await self.fetch(key)
        except CounterUnavailableError as e:
            self.logger.debug("Counter read fell back to zero", key=key, error=e.error_code)
            return 0

    def _key_path(self, key: str, action: str) -> str:
        """Build the request path for a key."""
        return f"/{quote(self.namespace, safe='')}/{quote(key, safe='')}/{action}"

    async def _request(self, path: str, key: str) -> dict[str, Any] | None:
        """GET a counter path, falling back across endpoints.

        Returns:
            Parsed JSON payload, or None if the service answered with a
            client error or an unparseable body.
        """
        if not self.breaker.should_allow_request():
            self.breaker.metrics.record_rejection()
            raise CounterCooldownError(self.namespace, retry_after=self.breaker.seconds_until_retry())

        failures: list[str] = []
        for endpoint in self.endpoints:
            url = f"{endpoint}{path}"
            try:
                response = await self.client.get(url, headers=NO_CACHE_HEADERS)
            except httpx.HTTPError as e:
                failures.append(f"{endpoint}: {type(e).__name__}")
                self.logger.warning(
                    "Counter endpoint request failed",
                    endpoint=endpoint,
                    key=key,
                    error=str(e) or type(e).__name__,
                )
                continue

            if response.status_code >= 500:
                failures.append(f"{endpoint}: HTTP {response.status_code}")
                self.logger.warning(
                    "Counter endpoint returned server error",
                    endpoint=endpoint,
                    key=key,
                    status_code=response.status_code,
                )
                continue

            self.breaker.record_success()

            if not response.is_success:
                # Unknown keys answer with a 4xx until their first increment
                return None

            try:
                return response.json()
            except ValueError:
                self.logger.warning("Counter returned non-JSON body", endpoint=endpoint, key=key)
                return None

        self.breaker.record_failure()
        raise CounterUnavailableError(self.namespace, failures)
