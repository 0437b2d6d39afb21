"""Utility functions and helpers."""

from sitecount.utils.exceptions import (
    CounterCooldownError,
    CounterUnavailableError,
    GeolocationError,
    SiteCountError,
    StorageError,
)
from sitecount.utils.keys import (
    GLOBAL_TOTAL_KEY,
    UNIQUE_VISITORS_KEY,
    last_n_day_keys,
    make_key,
    make_marker_key,
    sanitize_key_part,
)
from sitecount.utils.normalize import (
    DIRECT_REFERRER,
    detect_device,
    normalize_path,
    normalize_referrer,
    should_track_path,
)

__all__ = [
    # Exceptions
    "CounterCooldownError",
    "CounterUnavailableError",
    "GeolocationError",
    "SiteCountError",
    "StorageError",
    # Keys
    "GLOBAL_TOTAL_KEY",
    "UNIQUE_VISITORS_KEY",
    "last_n_day_keys",
    "make_key",
    "make_marker_key",
    "sanitize_key_part",
    # Normalization
    "DIRECT_REFERRER",
    "detect_device",
    "normalize_path",
    "normalize_referrer",
    "should_track_path",
]
