"""Pytest configuration and fixtures."""

import httpx
import pytest

from sitecount.catalog import DimensionCatalog
from sitecount.repositories.counter import CounterRepository
from sitecount.repositories.local_store import LocalStore, MemoryStorage
from sitecount.services.geolocation import GeolocationService

NAMESPACE = "test_site"
PRIMARY_ENDPOINT = "https://primary.counter.test/v1"
BACKUP_ENDPOINT = "https://backup.counter.test/v1"
GEO_URL = "https://geo.test/json/"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCounterService:
    """In-memory stand-in for the remote counter API.

    Increments create keys; reading a key that was never incremented
    answers 400, as the real service does.
    """

    def __init__(self):
        self.counts: dict[str, int] = {}
        self.requests: list[httpx.Request] = []
        self.down_hosts: set[str] = set()
        self.error_hosts: dict[str, int] = {}
        self.failing_keys: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.down_hosts:
            raise httpx.ConnectError("Connection refused", request=request)
        if host in self.error_hosts:
            return httpx.Response(self.error_hosts[host], json={"message": "server error"})

        parts = [part for part in request.url.path.split("/") if part]
        increment = parts[-1] == "up"
        key = parts[-2] if increment else parts[-1]

        if key in self.failing_keys:
            return httpx.Response(503, json={"message": "unavailable"})

        if increment:
            self.counts[key] = self.counts.get(key, 0) + 1
            return httpx.Response(200, json={"count": self.counts[key], "name": key})

        if key not in self.counts:
            return httpx.Response(400, json={"message": "record not found"})
        return httpx.Response(200, json={"count": self.counts[key], "name": key})

    def take_down(self, *endpoints: str) -> None:
        """Make the given endpoints refuse connections."""
        for endpoint in endpoints:
            self.down_hosts.add(httpx.URL(endpoint).host)

    def keys_requested(self) -> list[str]:
        return [request.url.path for request in self.requests]


class FakeGeoService:
    """In-memory stand-in for the IP geolocation lookup."""

    def __init__(self):
        self.payload: dict = {
            "ip": "203.0.113.7",
            "city": "Campinas",
            "region": "São Paulo",
            "country_name": "Brazil",
        }
        self.status_code = 200
        self.raise_error: Exception | None = None
        self.calls = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.raise_error is not None:
            raise self.raise_error
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def clock():
    """Monotonic clock for cool-down tests."""
    return FakeClock()


@pytest.fixture
def fake_counter_service():
    """Fake remote counter service."""
    return FakeCounterService()


@pytest.fixture
def counter(fake_counter_service, clock):
    """Counter repository backed by the fake service, with a backup endpoint."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_counter_service.handler))
    return CounterRepository(
        NAMESPACE,
        [PRIMARY_ENDPOINT, BACKUP_ENDPOINT],
        clock=clock,
        http_client=client,
    )


@pytest.fixture
def counter_no_cooldown(fake_counter_service):
    """Counter repository that never suppresses calls after a failure."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_counter_service.handler))
    return CounterRepository(
        NAMESPACE,
        [PRIMARY_ENDPOINT],
        cooldown_seconds=0,
        http_client=client,
    )


@pytest.fixture
def local_store():
    """Local store over in-memory storage."""
    return LocalStore(MemoryStorage())


@pytest.fixture
def fake_geo_service():
    """Fake geolocation service."""
    return FakeGeoService()


@pytest.fixture
def geolocation(fake_geo_service):
    """Geolocation service backed by the fake lookup, without a cache."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_geo_service.handler))
    return GeolocationService(GEO_URL, http_client=client)


@pytest.fixture
def catalog():
    """Small candidate catalog for insights tests."""
    return DimensionCatalog(
        paths=["/", "/about", "/blog/"],
        referrers=["direct", "google.com", "t.co"],
        devices=["phone-android", "phone-ios", "desktop"],
        countries=["Brazil", "Portugal"],
        states=["São Paulo", "Lisbon"],
        cities=["Campinas", "Porto"],
    )
