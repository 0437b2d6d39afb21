"""Insights aggregator for the dashboard page.

The counter API cannot list keys, so every section reads a fixed set of
candidate values and ranks whatever comes back. The global total and the
page list are required: if they fail, the whole dashboard reports
unavailable. Every other section fails on its own.
"""

import asyncio
from datetime import datetime
from typing import Callable, Sequence

import structlog

from sitecount.catalog import DimensionCatalog
from sitecount.models.dimension import Dimension
from sitecount.models.insights import InsightsReport, ListSection, NumberMetric, RankedEntry
from sitecount.repositories.counter import CounterRepository
from sitecount.services.dashboard import ROOT_MOUNT, DashboardSurface, render_report
from sitecount.utils.exceptions import CounterUnavailableError
from sitecount.utils.keys import GLOBAL_TOTAL_KEY, UNIQUE_VISITORS_KEY, last_n_day_keys, make_key

logger = structlog.get_logger()

REFERRER_LIMIT = 8
DEFAULT_LIMIT = 10

# Rolling windows in days
TODAY_WINDOW = 1
WEEK_WINDOW = 7
MONTH_WINDOW = 30


def top_entries(candidates: Sequence[str], counts: Sequence[int], limit: int) -> list[RankedEntry]:
    """Rank candidates by count.

    Zero counts are dropped and ties keep candidate order (the sort is
    stable).

    Args:
        candidates: Labels in declared order.
        counts: Count per candidate, same order.
        limit: Maximum number of entries.

    Returns:
        At most ``limit`` entries, highest count first.
    """
    entries = [
        RankedEntry(label=label, count=count)
        for label, count in zip(candidates, counts)
        if count > 0
    ]
    entries.sort(key=lambda entry: entry.count, reverse=True)
    return entries[:limit]


class InsightsAggregator:
    """Reads aggregate counters back for the insights dashboard."""

    def __init__(
        self,
        counter: CounterRepository,
        catalog: DimensionCatalog | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the aggregator.

        Args:
            counter: Remote counter repository.
            catalog: Known values to enumerate per dimension.
            clock: Local wall-clock source; anchors the rolling windows.
        """
        self.counter = counter
        self.catalog = catalog or DimensionCatalog()
        self.clock = clock
        self.logger = logger.bind(service="insights")

    async def render_insights(self, surface: DashboardSurface) -> None:
        """Collect insights and write them to the dashboard.

        Does nothing on pages without the dashboard root. Never raises.
        """
        if not surface.has_mount(ROOT_MOUNT):
            return

        try:
            report = await self.collect_insights()
        except Exception as e:
            self.logger.exception("Insights collection failed", error=str(e))
            report = InsightsReport.unavailable()

        render_report(surface, report)

    async def collect_insights(self) -> InsightsReport:
        """Read every dashboard section.

        Returns:
            InsightsReport; ``available`` is False when the required reads
            failed, in which case every section is in its failed state.
        """
        now = self.clock()
        paths = self.catalog.paths

        try:
            total, *path_counts = await asyncio.gather(
                self.counter.fetch(GLOBAL_TOTAL_KEY),
                *(self.counter.fetch(make_key(Dimension.PATH, path)) for path in paths),
            )
        except CounterUnavailableError as e:
            self.logger.warning("Insights unavailable", error=e.message, error_code=e.error_code)
            return InsightsReport.unavailable()

        (
            (today, last_7_days, last_30_days),
            top_referrers,
            top_devices,
            top_countries,
            top_states,
            top_cities,
            unique_visitors,
            top_unique_pages,
            top_unique_countries,
        ) = await asyncio.gather(
            self._rolling_sums(now),
            self._ranked("referrers", Dimension.REFERRER, self.catalog.referrers, REFERRER_LIMIT),
            self._ranked("devices", Dimension.DEVICE, self.catalog.devices),
            self._ranked("countries", Dimension.COUNTRY, self.catalog.countries),
            self._ranked("states", Dimension.STATE, self.catalog.states),
            self._ranked("cities", Dimension.CITY, self.catalog.cities),
            self._number("unique_visitors", UNIQUE_VISITORS_KEY),
            self._ranked("unique_pages", Dimension.PATH, paths, unique=True),
            self._ranked("unique_countries", Dimension.COUNTRY, self.catalog.countries, unique=True),
        )

        return InsightsReport(
            available=True,
            total=NumberMetric.ok(total),
            today=today,
            last_7_days=last_7_days,
            last_30_days=last_30_days,
            unique_visitors=unique_visitors,
            top_pages=ListSection.ok(top_entries(paths, path_counts, DEFAULT_LIMIT)),
            top_referrers=top_referrers,
            top_devices=top_devices,
            top_countries=top_countries,
            top_states=top_states,
            top_cities=top_cities,
            top_unique_pages=top_unique_pages,
            top_unique_countries=top_unique_countries,
        )

    async def rolling_sum(self, days: int, now: datetime | None = None) -> int:
        """Sum the day counters of the trailing ``days`` calendar days.

        Each day is read on its own; days never counted contribute 0.

        Raises:
            CounterUnavailableError: If the counter service is unreachable.
        """
        keys = last_n_day_keys(days, now or self.clock())
        counts = await asyncio.gather(*(self.counter.fetch(key) for key in keys))
        return sum(counts)

    async def _rolling_sums(self, now: datetime) -> tuple[NumberMetric, NumberMetric, NumberMetric]:
        """Today, 7-day and 30-day totals from one fan-out over 30 day keys."""
        keys = last_n_day_keys(MONTH_WINDOW, now)
        try:
            counts = await asyncio.gather(*(self.counter.fetch(key) for key in keys))
        except CounterUnavailableError as e:
            self.logger.warning("Rolling totals unavailable", error=e.message)
            failed = NumberMetric.failed()
            return failed, failed, failed

        return (
            NumberMetric.ok(sum(counts[:TODAY_WINDOW])),
            NumberMetric.ok(sum(counts[:WEEK_WINDOW])),
            NumberMetric.ok(sum(counts[:MONTH_WINDOW])),
        )

    async def _ranked(
        self,
        section: str,
        dimension: Dimension,
        candidates: Sequence[str],
        limit: int = DEFAULT_LIMIT,
        *,
        unique: bool = False,
    ) -> ListSection:
        """Read one counter per candidate and rank them."""
        try:
            counts = await asyncio.gather(
                *(self.counter.fetch(make_key(dimension, value, unique=unique)) for value in candidates)
            )
        except CounterUnavailableError as e:
            self.logger.warning("Insights section unavailable", section=section, error=e.message)
            return ListSection.failed()
        return ListSection.ok(top_entries(candidates, counts, limit))

    async def _number(self, section: str, key: str) -> NumberMetric:
        try:
            return NumberMetric.ok(await self.counter.fetch(key))
        except CounterUnavailableError as e:
            self.logger.warning("Insights section unavailable", section=section, error=e.message)
            return NumberMetric.failed()
