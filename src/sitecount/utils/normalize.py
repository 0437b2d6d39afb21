"""Page-load input normalization: path, referrer and device class."""

import re
from urllib.parse import urlsplit

from sitecount.models.dimension import DeviceClass

DIRECT_REFERRER = "direct"
DEFAULT_DOCUMENT = "index.html"
DEFAULT_EXCLUDE_PATTERN = r"/insights/$"


def normalize_path(pathname: str | None) -> str:
    """Strip the default document and treat an empty path as the root.

    /index.html -> /
    /blog/index.html -> /blog/
    """
    if not pathname:
        return "/"
    if pathname.endswith("/" + DEFAULT_DOCUMENT):
        return pathname[: -len(DEFAULT_DOCUMENT)]
    return pathname


def should_track_path(path: str, exclude_pattern: str | re.Pattern[str] = DEFAULT_EXCLUDE_PATTERN) -> bool:
    """Whether a normalized path is counted.

    The dashboard's own path is excluded so viewing it does not inflate
    the numbers it shows.
    """
    if isinstance(exclude_pattern, str):
        exclude_pattern = re.compile(exclude_pattern)
    return exclude_pattern.search(path or "") is None


def normalize_referrer(referrer: str | None) -> str:
    """Reduce a document referrer to its hostname.

    Scheme, a leading ``www.``, path and query are dropped. Missing,
    unparseable or hostless referrers become ``direct``.
    """
    if not referrer:
        return DIRECT_REFERRER
    try:
        host = urlsplit(referrer.strip()).hostname
    except ValueError:
        return DIRECT_REFERRER
    if not host:
        return DIRECT_REFERRER
    return host.lower().removeprefix("www.") or DIRECT_REFERRER


def detect_device(user_agent: str | None) -> DeviceClass:
    """Coarse device class from user-agent substrings."""
    ua = (user_agent or "").lower()
    if "iphone" in ua or "ipod" in ua:
        return DeviceClass.PHONE_IOS
    if "android" in ua:
        return DeviceClass.PHONE_ANDROID
    return DeviceClass.DESKTOP
