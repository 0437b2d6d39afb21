"""Tracker configuration.

Settings come from keyword arguments or, via TrackerSettings.from_env(),
from SITECOUNT_* environment variables. Candidate lists bound what the
dashboard enumerates; the counters themselves accept any value.
"""

import os
from typing import Mapping

from pydantic import BaseModel, Field

from sitecount.catalog import DimensionCatalog
from sitecount.repositories.counter import (
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_ENDPOINTS,
    DEFAULT_TIMEOUT,
)
from sitecount.repositories.local_store import DEFAULT_GEO_CACHE_TTL, DEFAULT_VISIT_LOG_LIMIT
from sitecount.services.geolocation import DEFAULT_GEO_TIMEOUT, DEFAULT_GEO_URL
from sitecount.utils.normalize import DEFAULT_EXCLUDE_PATTERN

DEFAULT_NAMESPACE = "sitecount_site"


class TrackerSettings(BaseModel):
    """Configuration for one tracked site."""

    namespace: str = DEFAULT_NAMESPACE
    counter_endpoints: list[str] = Field(default_factory=lambda: list(DEFAULT_ENDPOINTS), min_length=1)
    counter_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    cooldown_seconds: float = Field(default=DEFAULT_COOLDOWN_SECONDS, ge=0)

    geo_url: str = DEFAULT_GEO_URL
    geo_timeout: float = Field(default=DEFAULT_GEO_TIMEOUT, gt=0)
    geo_cache_ttl: float = Field(default=DEFAULT_GEO_CACHE_TTL, ge=0)

    exclude_pattern: str = DEFAULT_EXCLUDE_PATTERN
    visit_log_limit: int = Field(default=DEFAULT_VISIT_LOG_LIMIT, ge=1)
    store_path: str | None = None  # None keeps local state in memory

    catalog: DimensionCatalog = Field(default_factory=DimensionCatalog)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TrackerSettings":
        """Build settings from SITECOUNT_* environment variables.

        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        scalars = {
            "namespace": "SITECOUNT_NAMESPACE",
            "counter_timeout": "SITECOUNT_COUNTER_TIMEOUT",
            "cooldown_seconds": "SITECOUNT_COOLDOWN_SECONDS",
            "geo_url": "SITECOUNT_GEO_URL",
            "geo_timeout": "SITECOUNT_GEO_TIMEOUT",
            "geo_cache_ttl": "SITECOUNT_GEO_CACHE_TTL",
            "exclude_pattern": "SITECOUNT_EXCLUDE_PATTERN",
            "visit_log_limit": "SITECOUNT_VISIT_LOG_LIMIT",
            "store_path": "SITECOUNT_STORE_PATH",
        }
        for field_name, var in scalars.items():
            value = env.get(var)
            if value is not None and value.strip():
                values[field_name] = value.strip()

        endpoints = _env_list(env, "SITECOUNT_COUNTER_ENDPOINTS")
        if endpoints:
            values["counter_endpoints"] = endpoints

        catalog = {}
        for field_name in DimensionCatalog.model_fields:
            items = _env_list(env, f"SITECOUNT_KNOWN_{field_name.upper()}")
            if items:
                catalog[field_name] = items
        if catalog:
            values["catalog"] = DimensionCatalog(**catalog)

        return cls.model_validate(values)


def _env_list(env: Mapping[str, str], key: str) -> list[str]:
    """Split a comma-separated environment variable."""
    raw = env.get(key, "")
    return [item.strip() for item in raw.split(",") if item.strip()]
