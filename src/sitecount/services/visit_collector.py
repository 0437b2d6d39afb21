"""Visit collector.

Turns one page load into counter increments:

    global total, today, path, referrer, device,
    country, state, city,
    unique visitors, unique visitors per path, unique visitors per country

Increments that do not depend on geolocation start right away; the rest
follow once the lookup resolves. Nothing here ever raises into the page:
failures are logged and the visit is simply counted partially.
"""

import asyncio
import re
from datetime import datetime
from typing import Callable

import structlog

from sitecount.models.dimension import Dimension
from sitecount.models.visit import GeoLocation, PageContext, VisitOutcome, VisitRecord
from sitecount.repositories.counter import CounterRepository
from sitecount.repositories.local_store import LocalStore
from sitecount.services.geolocation import GeolocationService
from sitecount.services.uniqueness import UniquenessGate
from sitecount.utils.exceptions import SiteCountError, StorageError
from sitecount.utils.keys import (
    GLOBAL_TOTAL_KEY,
    UNIQUE_VISITORS_KEY,
    day_value,
    make_key,
    make_marker_key,
)
from sitecount.utils.normalize import (
    DEFAULT_EXCLUDE_PATTERN,
    detect_device,
    normalize_path,
    normalize_referrer,
    should_track_path,
)

logger = structlog.get_logger()


class VisitCollector:
    """Records page loads into the remote counters."""

    def __init__(
        self,
        counter: CounterRepository,
        geolocation: GeolocationService,
        *,
        store: LocalStore | None = None,
        exclude_pattern: str = DEFAULT_EXCLUDE_PATTERN,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the collector.

        Args:
            counter: Remote counter repository.
            geolocation: IP geolocation lookup.
            store: Optional local store for the visit log.
            exclude_pattern: Regex of paths that are never counted.
            clock: Local wall-clock source; picks the day key.
        """
        self.counter = counter
        self.geolocation = geolocation
        self.store = store
        self.exclude_pattern = re.compile(exclude_pattern)
        self.clock = clock
        self.gate = UniquenessGate(counter)
        self._tasks: set[asyncio.Task] = set()
        self.logger = logger.bind(service="visit_collector")

    def collect_visit(self, page: PageContext) -> None:
        """Record a page load in the background.

        One-way: the work runs as a detached task on the running event
        loop and this call returns immediately. No result and no error
        ever reaches the caller.

        Args:
            page: The page load being recorded.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning("No running event loop, visit not recorded", pathname=page.pathname)
            return

        task = loop.create_task(self.record_visit(page))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Visit task ended with an error", error=str(exc))

    @property
    def pending(self) -> int:
        """Number of visit tasks still in flight."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight visit tasks to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def record_visit(self, page: PageContext) -> VisitOutcome | None:
        """Record a page load and report what was written.

        Never raises.

        Returns:
            VisitOutcome, or None if the path is not tracked or collection
            failed unexpectedly.
        """
        try:
            return await self._record(page)
        except Exception as e:
            self.logger.exception("Visit collection failed", pathname=page.pathname, error=str(e))
            return None

    async def _record(self, page: PageContext) -> VisitOutcome | None:
        path = normalize_path(page.pathname)
        if not should_track_path(path, self.exclude_pattern):
            self.logger.debug("Path excluded from tracking", path=path)
            return None

        referrer = normalize_referrer(page.referrer)
        device = detect_device(page.user_agent)
        day = self.clock()

        base_keys = [
            GLOBAL_TOTAL_KEY,
            make_key(Dimension.DAY, day),
            make_key(Dimension.PATH, path),
            make_key(Dimension.REFERRER, referrer),
            make_key(Dimension.DEVICE, device),
        ]
        base_hits = [asyncio.create_task(self._hit(key)) for key in base_keys]

        try:
            geo = await self.geolocation.lookup()
        except Exception as e:
            # Base increments are already in flight and must still be awaited
            self.logger.exception("Geolocation failed unexpectedly", error=str(e))
            geo = GeoLocation.unknown()

        geo_keys = [
            make_key(Dimension.COUNTRY, geo.country),
            make_key(Dimension.STATE, geo.region),
            make_key(Dimension.CITY, geo.city),
        ]
        unique_checks = self._unique_checks(path, geo)

        results = await asyncio.gather(
            *base_hits,
            *(self._hit(key) for key in geo_keys),
            *unique_checks.values(),
        )
        hit_keys = base_keys + geo_keys
        hits = dict(zip(hit_keys, results[: len(hit_keys)]))
        unique = dict(zip(unique_checks.keys(), results[len(hit_keys):]))

        self._log_locally(page, path, referrer, geo)

        outcome = VisitOutcome(
            path=path,
            referrer=referrer,
            device=device.value,
            day=day_value(day),
            geo=geo,
            hits=hits,
            unique=unique,
        )
        if outcome.failed_hits:
            self.logger.warning(
                "Visit counted partially",
                path=path,
                failed=len(outcome.failed_hits),
                total=len(hits),
            )
        return outcome

    def _unique_checks(self, path: str, geo: GeoLocation) -> dict:
        """Uniqueness gate runs for this visit, keyed by metric name.

        Skipped entirely without a resolved IP to act as witness.
        """
        if not geo.is_resolved:
            self.logger.debug("No witness IP, skipping unique counts")
            return {}

        ip = geo.ip
        return {
            "visitor": self.gate.ensure_once(
                make_marker_key(ip),
                [UNIQUE_VISITORS_KEY],
            ),
            "path": self.gate.ensure_once(
                make_marker_key(ip, Dimension.PATH, path),
                [make_key(Dimension.PATH, path, unique=True)],
            ),
            "country": self.gate.ensure_once(
                make_marker_key(ip, Dimension.COUNTRY, geo.country),
                [make_key(Dimension.COUNTRY, geo.country, unique=True)],
            ),
        }

    async def _hit(self, key: str) -> bool:
        """Increment one counter, reporting success instead of raising.

        An increment the service did not accept (new value 0) counts as a
        failure.
        """
        try:
            return await self.counter.increment(key) > 0
        except SiteCountError as e:
            self.logger.debug("Counter increment dropped", key=key, error=e.error_code)
            return False

    def _log_locally(self, page: PageContext, path: str, referrer: str, geo: GeoLocation) -> None:
        """Append the visit to the local log, if one is configured."""
        if self.store is None:
            return
        try:
            record = VisitRecord(
                visitor_id=self.store.get_or_create_visitor_id(),
                path=path,
                referrer=referrer,
                language=page.language,
                timezone=page.timezone,
                platform=page.platform,
                screen=page.screen,
                geo=geo,
            )
            self.store.append_visit(record)
        except StorageError as e:
            self.logger.warning("Visit not logged locally", error=e.message)
