"""Counter key encoding.

Every remote counter lives under one flat string key built from a
dimension, a sanitized value and a schema suffix:

    path_home_views_v2
    referrer_google_com_views_v2
    day_2024_05_01_views_v1
    country_brazil_uniques_v1

Suffixes carry the schema version. Bump the suffix of a dimension whenever
what it counts changes, so old and new counters never share a key.
"""

import re
from datetime import date, datetime, timedelta
from enum import Enum

from sitecount.models.dimension import Dimension

UNKNOWN_TOKEN = "unknown"
HOME_TOKEN = "home"

GLOBAL_TOTAL_KEY = "site_total_views_v2"
UNIQUE_VISITORS_KEY = "site_unique_visitors_v1"

VIEW_SUFFIXES: dict[Dimension, str] = {
    Dimension.PATH: "views_v2",
    Dimension.REFERRER: "views_v2",
    Dimension.DEVICE: "views_v2",
    Dimension.DAY: "views_v1",
    Dimension.COUNTRY: "views_v1",
    Dimension.STATE: "views_v1",
    Dimension.CITY: "views_v1",
}
UNIQUE_SUFFIX = "uniques_v1"
MARKER_PREFIX = "seen"
MARKER_SUFFIX = "v1"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def sanitize_key_part(value: object) -> str:
    """Case-fold a value and replace anything outside [a-z0-9] with '_'.

    Missing or empty values map to the unknown token. Applying this twice
    gives the same result as applying it once.
    """
    if value is None:
        return UNKNOWN_TOKEN
    text = value.value if isinstance(value, Enum) else str(value)
    if not text:
        return UNKNOWN_TOKEN
    return _NON_ALNUM.sub("_", text.lower())


def day_value(day: date | datetime) -> str:
    """Format a calendar day as YYYY_MM_DD."""
    if isinstance(day, datetime):
        day = day.date()
    return f"{day.year:04d}_{day.month:02d}_{day.day:02d}"


def value_token(dimension: Dimension | str, raw_value: object) -> str:
    """Sanitized key fragment for one dimension value."""
    dimension = Dimension(dimension)
    if dimension == Dimension.PATH and raw_value == "/":
        return HOME_TOKEN
    if dimension == Dimension.DAY and isinstance(raw_value, (date, datetime)):
        raw_value = day_value(raw_value)
    return sanitize_key_part(raw_value)


def make_key(dimension: Dimension | str, raw_value: object, *, unique: bool = False) -> str:
    """Build the counter key for (dimension, value).

    Args:
        dimension: Dimension being counted.
        raw_value: Unsanitized value (path, hostname, device class, day...).
        unique: Key of the unique-visitor aggregate instead of raw views.

    Returns:
        Counter key.
    """
    dimension = Dimension(dimension)
    suffix = UNIQUE_SUFFIX if unique else VIEW_SUFFIXES[dimension]
    return f"{dimension.value}_{value_token(dimension, raw_value)}_{suffix}"


def make_marker_key(
    witness: str,
    dimension: Dimension | str | None = None,
    raw_value: object = None,
) -> str:
    """Build a uniqueness marker key for a witness.

    Without a dimension the marker scopes the witness site-wide
    (``seen_visitor_<ip>_v1``); with one it scopes it to a single value
    (``seen_path_home_<ip>_v1``).
    """
    witness_token = sanitize_key_part(witness)
    if dimension is None:
        return f"{MARKER_PREFIX}_visitor_{witness_token}_{MARKER_SUFFIX}"
    dimension = Dimension(dimension)
    return (
        f"{MARKER_PREFIX}_{dimension.value}_{value_token(dimension, raw_value)}"
        f"_{witness_token}_{MARKER_SUFFIX}"
    )


def last_n_day_keys(days: int, now: datetime | None = None) -> list[str]:
    """Day keys for the trailing ``days`` calendar days, newest first.

    Days are stepped from local noon so a DST shift or a call right at
    midnight never skips or repeats a calendar day.
    """
    anchor = (now or datetime.now()).replace(hour=12, minute=0, second=0, microsecond=0)
    return [make_key(Dimension.DAY, anchor - timedelta(days=offset)) for offset in range(days)]
