"""Site tracker facade.

Wires one site's settings into a counter repository, geolocation lookup,
visit collector and insights aggregator. Every page calls page_loaded();
the dashboard page also awaits dashboard_loaded() once its mount points
exist.
"""

from datetime import datetime
from typing import Callable

import structlog

from sitecount.config import TrackerSettings
from sitecount.models.visit import PageContext
from sitecount.repositories.counter import CounterRepository
from sitecount.repositories.local_store import JsonFileStorage, LocalStore, MemoryStorage
from sitecount.services.dashboard import DashboardSurface
from sitecount.services.geolocation import GeolocationService
from sitecount.services.insights import InsightsAggregator
from sitecount.services.visit_collector import VisitCollector

logger = structlog.get_logger()


def build_local_store(settings: TrackerSettings) -> LocalStore:
    """Local store on disk when a store path is configured, else in memory."""
    storage = JsonFileStorage(settings.store_path) if settings.store_path else MemoryStorage()
    return LocalStore(
        storage,
        visit_log_limit=settings.visit_log_limit,
        geo_cache_ttl=settings.geo_cache_ttl,
    )


class SiteTracker:
    """Visit tracking and insights for one site.

    Example:
        async with SiteTracker(TrackerSettings.from_env()) as tracker:
            tracker.page_loaded(PageContext(pathname="/", referrer=referrer))
            await tracker.dashboard_loaded(surface)
    """

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        *,
        counter: CounterRepository | None = None,
        geolocation: GeolocationService | None = None,
        store: LocalStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the tracker.

        Args:
            settings: Site configuration; defaults to the environment.
            counter: Optional prebuilt counter repository (for testing).
            geolocation: Optional prebuilt geolocation service (for testing).
            store: Optional prebuilt local store.
            clock: Local wall-clock source for day keys.
        """
        self.settings = settings or TrackerSettings.from_env()
        self.store = store or build_local_store(self.settings)
        self.counter = counter or CounterRepository(
            self.settings.namespace,
            self.settings.counter_endpoints,
            timeout=self.settings.counter_timeout,
            cooldown_seconds=self.settings.cooldown_seconds,
        )
        self.geolocation = geolocation or GeolocationService(
            self.settings.geo_url,
            timeout=self.settings.geo_timeout,
            store=self.store,
        )
        self.collector = VisitCollector(
            self.counter,
            self.geolocation,
            store=self.store,
            exclude_pattern=self.settings.exclude_pattern,
            clock=clock,
        )
        self.aggregator = InsightsAggregator(self.counter, self.settings.catalog, clock=clock)
        self.logger = logger.bind(service="site_tracker", namespace=self.settings.namespace)

    def page_loaded(self, page: PageContext) -> None:
        """Count a page load in the background. Returns immediately."""
        self.collector.collect_visit(page)

    async def dashboard_loaded(self, surface: DashboardSurface) -> None:
        """Render the insights dashboard into its mount points."""
        await self.aggregator.render_insights(surface)

    async def aclose(self) -> None:
        """Wait for pending visits, then release HTTP clients."""
        if self.collector.pending:
            self.logger.debug("Draining pending visits", pending=self.collector.pending)
        await self.collector.drain()
        await self.counter.aclose()
        await self.geolocation.aclose()

    async def __aenter__(self) -> "SiteTracker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
