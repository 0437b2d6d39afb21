"""Service classes for visit collection and insights."""

from sitecount.services.dashboard import (
    DashboardSurface,
    MountPointSurface,
    render_report,
)
from sitecount.services.geolocation import GeolocationService
from sitecount.services.insights import InsightsAggregator, top_entries
from sitecount.services.uniqueness import UniquenessGate
from sitecount.services.visit_collector import VisitCollector

__all__ = [
    "DashboardSurface",
    "GeolocationService",
    "InsightsAggregator",
    "MountPointSurface",
    "UniquenessGate",
    "VisitCollector",
    "render_report",
    "top_entries",
]
