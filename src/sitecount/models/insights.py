"""Insights dashboard models.

The aggregator produces an InsightsReport; the dashboard surface only
ever sees rendering-ready labels and counts.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel as PydanticBaseModel, Field

from sitecount.models.base import utc_now


class SectionStatus(str, Enum):
    """Load status of one dashboard section."""

    OK = "ok"
    FAILED = "failed"


class RankedEntry(PydanticBaseModel):
    """A (label, count) pair in a top-N list."""

    label: str
    count: int = Field(ge=0)


class NumberMetric(PydanticBaseModel):
    """A single number on the dashboard."""

    status: SectionStatus = SectionStatus.OK
    value: int = 0

    @classmethod
    def ok(cls, value: int) -> "NumberMetric":
        return cls(status=SectionStatus.OK, value=value)

    @classmethod
    def failed(cls) -> "NumberMetric":
        return cls(status=SectionStatus.FAILED)

    @property
    def available(self) -> bool:
        return self.status == SectionStatus.OK


class ListSection(PydanticBaseModel):
    """A top-N list on the dashboard."""

    status: SectionStatus = SectionStatus.OK
    entries: list[RankedEntry] = Field(default_factory=list)

    @classmethod
    def ok(cls, entries: list[RankedEntry]) -> "ListSection":
        return cls(status=SectionStatus.OK, entries=entries)

    @classmethod
    def failed(cls) -> "ListSection":
        return cls(status=SectionStatus.FAILED)

    @property
    def available(self) -> bool:
        return self.status == SectionStatus.OK


class InsightsReport(PydanticBaseModel):
    """Everything the insights dashboard shows."""

    generated_at: datetime = Field(default_factory=utc_now)
    available: bool = True

    total: NumberMetric = Field(default_factory=NumberMetric.failed)
    today: NumberMetric = Field(default_factory=NumberMetric.failed)
    last_7_days: NumberMetric = Field(default_factory=NumberMetric.failed)
    last_30_days: NumberMetric = Field(default_factory=NumberMetric.failed)
    unique_visitors: NumberMetric = Field(default_factory=NumberMetric.failed)

    top_pages: ListSection = Field(default_factory=ListSection.failed)
    top_referrers: ListSection = Field(default_factory=ListSection.failed)
    top_devices: ListSection = Field(default_factory=ListSection.failed)
    top_countries: ListSection = Field(default_factory=ListSection.failed)
    top_states: ListSection = Field(default_factory=ListSection.failed)
    top_cities: ListSection = Field(default_factory=ListSection.failed)
    top_unique_pages: ListSection = Field(default_factory=ListSection.failed)
    top_unique_countries: ListSection = Field(default_factory=ListSection.failed)

    @classmethod
    def unavailable(cls, generated_at: datetime | None = None) -> "InsightsReport":
        """Report shown when the required reads failed.

        Every field defaults to its failed state, so nothing partial leaks
        through.
        """
        return cls(generated_at=generated_at or utc_now(), available=False)
