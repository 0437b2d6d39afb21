"""IP geolocation lookup service.

Resolves the client IP, country, region and city from an unauthenticated
JSON lookup (ipapi.co style). Lookups are bounded by a short overall
timeout and never fail the caller: on any error the location is unknown.
"""

import asyncio

import httpx
import structlog

from sitecount.models.visit import GeoLocation
from sitecount.repositories.local_store import LocalStore
from sitecount.utils.exceptions import GeolocationError, StorageError

logger = structlog.get_logger()

DEFAULT_GEO_URL = "https://ipapi.co/json/"
DEFAULT_GEO_TIMEOUT = 2.5


class GeolocationService:
    """Looks up the visitor's approximate location."""

    def __init__(
        self,
        url: str = DEFAULT_GEO_URL,
        *,
        timeout: float = DEFAULT_GEO_TIMEOUT,
        store: LocalStore | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the geolocation service.

        Args:
            url: Lookup endpoint returning JSON for the caller's IP.
            timeout: Overall lookup budget in seconds.
            store: Optional local store used as a TTL cache.
            http_client: Optional shared client (for testing).
        """
        self.url = url
        self.timeout = timeout
        self.store = store
        self._client = http_client
        self._owns_client = http_client is None
        self.logger = logger.bind(service="geolocation")

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def lookup(self) -> GeoLocation:
        """Resolve the current location, from cache when still fresh.

        Returns:
            GeoLocation; all labels unknown if the lookup failed.
        """
        cached = self._cached()
        if cached is not None:
            return cached

        try:
            geo = await self._fetch()
        except GeolocationError as e:
            self.logger.warning("Geolocation lookup failed", error=e.message, **e.details)
            return GeoLocation.unknown()

        if self.store is not None:
            try:
                self.store.cache_geo(geo)
            except StorageError as e:
                self.logger.debug("Could not cache geolocation", error=e.message)
        return geo

    def _cached(self) -> GeoLocation | None:
        if self.store is None:
            return None
        try:
            return self.store.get_cached_geo()
        except StorageError as e:
            self.logger.debug("Geolocation cache unavailable", error=e.message)
            return None

    async def _fetch(self) -> GeoLocation:
        """Call the lookup endpoint.

        Raises:
            GeolocationError: On timeout, transport error, non-success
                status or an error payload.
        """
        try:
            response = await asyncio.wait_for(
                self.client.get(self.url, headers={"Accept": "application/json"}),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise GeolocationError("Geolocation lookup timed out") from e
        except httpx.HTTPError as e:
            raise GeolocationError("Geolocation request failed", original_error=str(e)) from e

        if not response.is_success:
            raise GeolocationError(f"Geolocation service returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise GeolocationError("Geolocation service returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise GeolocationError("Geolocation service returned unexpected payload")
        if payload.get("error"):
            raise GeolocationError(
                "Geolocation service reported an error",
                original_error=str(payload.get("reason") or payload.get("message") or ""),
            )

        return GeoLocation.from_payload(payload)
