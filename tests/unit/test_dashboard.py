"""Tests for the dashboard surface."""

from sitecount.models.insights import InsightsReport, ListSection, NumberMetric, RankedEntry
from sitecount.services.dashboard import (
    ALL_MOUNTS,
    COUNTRIES_MOUNT,
    PAGES_MOUNT,
    ROOT_MOUNT,
    TODAY_MOUNT,
    TOTAL_MOUNT,
    MountPointSurface,
    render_report,
)


class TestMountPointSurface:
    """Tests for MountPointSurface."""

    def test_default_mounts(self):
        surface = MountPointSurface()
        assert surface.has_mount(ROOT_MOUNT)
        assert all(surface.has_mount(mount) for mount in ALL_MOUNTS)

    def test_missing_mount_skipped(self):
        """Writes to mount points the page lacks are ignored."""
        surface = MountPointSurface(mount_ids=[ROOT_MOUNT])

        surface.set_text(TOTAL_MOUNT, "10")
        surface.set_list(PAGES_MOUNT, [RankedEntry(label="/", count=1)], "No data")

        assert surface.text == {}
        assert surface.items == {}

    def test_empty_list_placeholder(self):
        surface = MountPointSurface()

        surface.set_list(PAGES_MOUNT, [], "No data")

        assert surface.items[PAGES_MOUNT] == [("No data", "0")]

    def test_render_html_escapes(self):
        """Labels are escaped when rendered."""
        surface = MountPointSurface()
        surface.set_list(PAGES_MOUNT, [RankedEntry(label="/<script>", count=3)], "No data")

        html = surface.render_html(PAGES_MOUNT)

        assert html == "<li><span>/&lt;script&gt;</span><strong>3</strong></li>"


class TestRenderReport:
    """Tests for render_report."""

    def test_mixed_sections(self):
        """Available sections render values; failed ones render their failure label."""
        report = InsightsReport(
            total=NumberMetric.ok(120),
            today=NumberMetric.failed(),
            top_pages=ListSection.ok([RankedEntry(label="/", count=100)]),
            top_countries=ListSection.failed(),
        )
        surface = MountPointSurface()

        render_report(surface, report)

        assert surface.text[TOTAL_MOUNT] == "120"
        assert surface.text[TODAY_MOUNT] == "unavailable"
        assert surface.items[PAGES_MOUNT] == [("/", "100")]
        assert surface.items[COUNTRIES_MOUNT] == [("Failed to load countries", "0")]
