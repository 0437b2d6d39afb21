"""Pydantic models for sitecount entities."""

from sitecount.models.base import BaseModel, generate_ulid, utc_now
from sitecount.models.dimension import DeviceClass, Dimension
from sitecount.models.insights import (
    InsightsReport,
    ListSection,
    NumberMetric,
    RankedEntry,
    SectionStatus,
)
from sitecount.models.visit import (
    UNKNOWN_LABEL,
    GeoLocation,
    PageContext,
    VisitOutcome,
    VisitRecord,
)

__all__ = [
    # Base
    "BaseModel",
    "generate_ulid",
    "utc_now",
    # Dimensions
    "DeviceClass",
    "Dimension",
    # Insights
    "InsightsReport",
    "ListSection",
    "NumberMetric",
    "RankedEntry",
    "SectionStatus",
    # Visit
    "UNKNOWN_LABEL",
    "GeoLocation",
    "PageContext",
    "VisitOutcome",
    "VisitRecord",
]
