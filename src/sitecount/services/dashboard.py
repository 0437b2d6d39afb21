"""Insights dashboard surface.

The dashboard is a fixed set of named mount points. The aggregator writes
text or (label, count) lists into them; mount points the surface does not
have are silently skipped.
"""

from html import escape
from typing import Iterable, Protocol, Sequence

from sitecount.models.insights import InsightsReport, ListSection, NumberMetric, RankedEntry

ROOT_MOUNT = "insights-root"

TOTAL_MOUNT = "global-total-visits"
TODAY_MOUNT = "global-visits-today"
LAST_7_DAYS_MOUNT = "global-visits-7d"
LAST_30_DAYS_MOUNT = "global-visits-30d"
UNIQUE_VISITORS_MOUNT = "global-unique-visitors"

PAGES_MOUNT = "global-top-pages"
REFERRERS_MOUNT = "global-top-referrers"
DEVICES_MOUNT = "global-top-devices"
COUNTRIES_MOUNT = "global-top-countries"
STATES_MOUNT = "global-top-states"
CITIES_MOUNT = "global-top-cities"
UNIQUE_PAGES_MOUNT = "global-top-unique-pages"
UNIQUE_COUNTRIES_MOUNT = "global-top-unique-countries"

UNAVAILABLE_LABEL = "unavailable"

# report field -> mount point
NUMBER_MOUNTS = {
    "total": TOTAL_MOUNT,
    "today": TODAY_MOUNT,
    "last_7_days": LAST_7_DAYS_MOUNT,
    "last_30_days": LAST_30_DAYS_MOUNT,
    "unique_visitors": UNIQUE_VISITORS_MOUNT,
}

# report field -> (mount point, empty label, failure label)
LIST_MOUNTS = {
    "top_pages": (PAGES_MOUNT, "No data", "Failed to load pages"),
    "top_referrers": (REFERRERS_MOUNT, "No referrers recorded", "Failed to load referrers"),
    "top_devices": (DEVICES_MOUNT, "No devices recorded", "Failed to load devices"),
    "top_countries": (COUNTRIES_MOUNT, "No countries recorded", "Failed to load countries"),
    "top_states": (STATES_MOUNT, "No states recorded", "Failed to load states"),
    "top_cities": (CITIES_MOUNT, "No cities recorded", "Failed to load cities"),
    "top_unique_pages": (UNIQUE_PAGES_MOUNT, "No data", "Failed to load unique pages"),
    "top_unique_countries": (
        UNIQUE_COUNTRIES_MOUNT,
        "No countries recorded",
        "Failed to load unique countries",
    ),
}

ALL_MOUNTS = (ROOT_MOUNT, *NUMBER_MOUNTS.values(), *(mount for mount, _, _ in LIST_MOUNTS.values()))


class DashboardSurface(Protocol):
    """Presentation layer the aggregator renders into."""

    def has_mount(self, mount_id: str) -> bool: ...

    def set_text(self, mount_id: str, text: str) -> None: ...

    def set_list(self, mount_id: str, entries: Sequence[RankedEntry], empty_label: str) -> None: ...


class MountPointSurface:
    """In-process dashboard surface holding rendered content per mount point."""

    def __init__(self, mount_ids: Iterable[str] = ALL_MOUNTS):
        """Initialize the surface with the mount points the page has."""
        self.mount_ids = set(mount_ids)
        self.text: dict[str, str] = {}
        self.items: dict[str, list[tuple[str, str]]] = {}

    def has_mount(self, mount_id: str) -> bool:
        """Whether the page has this mount point."""
        return mount_id in self.mount_ids

    def set_text(self, mount_id: str, text: str) -> None:
        """Set the text of a number mount point."""
        if mount_id in self.mount_ids:
            self.text[mount_id] = text

    def set_list(self, mount_id: str, entries: Sequence[RankedEntry], empty_label: str) -> None:
        """Set list items, or a single placeholder item when there are none."""
        if mount_id not in self.mount_ids:
            return
        if not entries:
            self.items[mount_id] = [(empty_label, "0")]
            return
        self.items[mount_id] = [(entry.label, str(entry.count)) for entry in entries]

    def render_html(self, mount_id: str) -> str:
        """Render a list mount point as <li> items."""
        return "".join(
            f"<li><span>{escape(label)}</span><strong>{escape(count)}</strong></li>"
            for label, count in self.items.get(mount_id, [])
        )


def render_number(surface: DashboardSurface, mount_id: str, metric: NumberMetric) -> None:
    """Write a number, or the unavailable label if it failed to load."""
    surface.set_text(mount_id, str(metric.value) if metric.available else UNAVAILABLE_LABEL)


def render_section(
    surface: DashboardSurface,
    mount_id: str,
    section: ListSection,
    empty_label: str,
    failure_label: str,
) -> None:
    """Write a list section, or its failure label if it failed to load."""
    if section.available:
        surface.set_list(mount_id, section.entries, empty_label)
    else:
        surface.set_list(mount_id, [], failure_label)


def render_report(surface: DashboardSurface, report: InsightsReport) -> None:
    """Write every metric and list of a report to its mount point."""
    for field_name, mount_id in NUMBER_MOUNTS.items():
        render_number(surface, mount_id, getattr(report, field_name))

    for field_name, (mount_id, empty_label, failure_label) in LIST_MOUNTS.items():
        render_section(surface, mount_id, getattr(report, field_name), empty_label, failure_label)
