"""Uniqueness gate for at-most-once aggregate counting.

A marker counter records whether a witness (the visitor's resolved IP) was
already counted for a metric. The gate reads the marker and, only while it
is still zero, increments the marker together with the aggregates.

Known limitation: read-then-increment is not atomic. Two visits from the
same witness landing between each other's read and increment both see
zero, and the aggregates are counted twice. The counter API offers no
increment-if-absent primitive, so this approximation is accepted.
"""

import asyncio
from typing import Sequence

import structlog

from sitecount.repositories.counter import CounterRepository

logger = structlog.get_logger()


class UniquenessGate:
    """Counts a logical event into aggregates at most once per witness."""

    def __init__(self, counter: CounterRepository):
        self.counter = counter
        self.logger = logger.bind(service="uniqueness_gate")

    async def ensure_once(self, marker_key: str, aggregate_keys: Sequence[str]) -> bool:
        """Count the aggregates unless the marker was already set.

        Args:
            marker_key: Marker counter for this witness and metric.
            aggregate_keys: Aggregate counters to bump on first occurrence.

        Returns:
            True if this was the first occurrence and at least one increment
            landed. False if already counted, or if every increment was
            rejected (for instance during the counter cool-down).
        """
        if await self.counter.read(marker_key) > 0:
            self.logger.debug("Witness already counted", marker_key=marker_key)
            return False

        keys = [marker_key, *aggregate_keys]
        results = await asyncio.gather(
            *(self.counter.increment(key) for key in keys),
            return_exceptions=True,
        )
        landed = 0
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                self.logger.warning(
                    "Unique counter increment failed",
                    key=key,
                    error=str(result),
                )
            elif result > 0:
                landed += 1

        if not landed:
            self.logger.warning("No unique counter increment landed", marker_key=marker_key)
        return landed > 0
