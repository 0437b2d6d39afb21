"""Visit models.

A PageContext is what the page hands the collector on load. GeoLocation
is the resolved IP lookup. VisitRecord is the local-only log entry; it
never leaves the local store.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel as PydanticBaseModel, Field

from sitecount.models.base import BaseModel, utc_now

UNKNOWN_LABEL = "unknown"


class PageContext(PydanticBaseModel):
    """Browser-side inputs of one page load."""

    pathname: str = "/"
    referrer: str | None = None
    user_agent: str | None = None

    # Optional metadata, only kept in the local visit log
    language: str | None = None
    timezone: str | None = None
    platform: str | None = None
    screen: str | None = None  # e.g. "1920x1080"


class GeoLocation(PydanticBaseModel):
    """Approximate location resolved from the client IP."""

    ip: str | None = None
    country: str = UNKNOWN_LABEL
    region: str = UNKNOWN_LABEL
    city: str = UNKNOWN_LABEL

    @classmethod
    def unknown(cls) -> "GeoLocation":
        """Location used when the lookup fails."""
        return cls()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "GeoLocation":
        """Build from a geolocation service JSON payload.

        Accepts both ``country_name`` and ``country`` spellings and
        ``region`` or ``regionName`` for the state level.
        """

        def _label(*names: str) -> str:
            for name in names:
                value = payload.get(name)
                if isinstance(value, str) and value.strip():
                    return value.strip()
            return UNKNOWN_LABEL

        ip = payload.get("ip") or payload.get("query")
        return cls(
            ip=str(ip).strip() if ip else None,
            country=_label("country_name", "country"),
            region=_label("region", "regionName"),
            city=_label("city"),
        )

    @property
    def is_resolved(self) -> bool:
        """Whether the lookup produced a usable witness IP."""
        return bool(self.ip)


class VisitRecord(BaseModel):
    """Local visit log entry."""

    visitor_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    path: str
    referrer: str
    language: str | None = None
    timezone: str | None = None
    platform: str | None = None
    screen: str | None = None
    geo: GeoLocation = Field(default_factory=GeoLocation.unknown)


class VisitOutcome(PydanticBaseModel):
    """What one collected page load resolved to and which writes landed."""

    path: str
    referrer: str
    device: str
    day: str
    geo: GeoLocation
    hits: dict[str, bool] = Field(default_factory=dict)  # counter key -> increment succeeded
    unique: dict[str, bool] = Field(default_factory=dict)  # metric -> first occurrence

    @property
    def failed_hits(self) -> list[str]:
        """Counter keys whose increment did not go through."""
        return [key for key, ok in self.hits.items() if not ok]
