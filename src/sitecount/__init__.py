"""Privacy-light page view tracking over a remote counter API."""

from sitecount.config import TrackerSettings
from sitecount.catalog import DimensionCatalog
from sitecount.models.visit import PageContext
from sitecount.services.dashboard import MountPointSurface
from sitecount.tracker import SiteTracker

__version__ = "0.1.0"

__all__ = [
    "DimensionCatalog",
    "MountPointSurface",
    "PageContext",
    "SiteTracker",
    "TrackerSettings",
]
