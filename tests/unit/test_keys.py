"""Tests for counter key encoding."""

from datetime import date, datetime

import pytest

from sitecount.models.dimension import DeviceClass, Dimension
from sitecount.utils.keys import (
    GLOBAL_TOTAL_KEY,
    last_n_day_keys,
    make_key,
    make_marker_key,
    sanitize_key_part,
)


class TestSanitizeKeyPart:
    """Tests for sanitize_key_part."""

    def test_replaces_non_alphanumerics(self):
        """Anything outside [a-z0-9] becomes an underscore."""
        assert sanitize_key_part("google.com") == "google_com"
        assert sanitize_key_part("/blog/post-1") == "_blog_post_1"

    def test_case_folds(self):
        """Values are lowercased before replacement."""
        assert sanitize_key_part("United States") == "united_states"

    def test_idempotent(self):
        """Sanitizing twice equals sanitizing once."""
        once = sanitize_key_part("São Paulo / SP")
        assert sanitize_key_part(once) == once

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_maps_to_unknown(self, value):
        """Missing or empty values map to the unknown token."""
        assert sanitize_key_part(value) == "unknown"

    def test_enum_uses_its_value(self):
        """Enum members sanitize their value, not their repr."""
        assert sanitize_key_part(DeviceClass.PHONE_IOS) == "phone_ios"


class TestMakeKey:
    """Tests for make_key."""

    def test_root_path_is_home(self):
        """The site root maps to the home literal."""
        assert make_key(Dimension.PATH, "/") == "path_home_views_v2"

    def test_nested_path(self):
        """Other paths are sanitized."""
        assert make_key(Dimension.PATH, "/about") == "path__about_views_v2"

    def test_referrer_and_device(self):
        """Referrer and device keys use the v2 view suffix."""
        assert make_key(Dimension.REFERRER, "google.com") == "referrer_google_com_views_v2"
        assert make_key(Dimension.DEVICE, DeviceClass.PHONE_ANDROID) == "device_phone_android_views_v2"

    def test_day_from_date(self):
        """Days are formatted YYYY_MM_DD."""
        assert make_key(Dimension.DAY, date(2024, 5, 1)) == "day_2024_05_01_views_v1"
        assert make_key(Dimension.DAY, datetime(2024, 12, 31, 23, 59)) == "day_2024_12_31_views_v1"

    def test_geo_levels(self):
        """Country, state and city keys use the v1 view suffix."""
        assert make_key(Dimension.COUNTRY, "Brazil") == "country_brazil_views_v1"
        assert make_key(Dimension.STATE, None) == "state_unknown_views_v1"
        assert make_key(Dimension.CITY, "Rio de Janeiro") == "city_rio_de_janeiro_views_v1"

    def test_unique_suffix(self):
        """Unique aggregates never share a key with raw views."""
        views = make_key(Dimension.PATH, "/")
        uniques = make_key(Dimension.PATH, "/", unique=True)
        assert uniques == "path_home_uniques_v1"
        assert uniques != views

    def test_accepts_dimension_string(self):
        """Dimension may be given by its value."""
        assert make_key("country", "Portugal") == make_key(Dimension.COUNTRY, "Portugal")

    def test_distinct_values_distinct_keys(self):
        """Values that sanitize differently never share a key."""
        values = ["/", "/about", "/blog/", "/blog", "google.com", "brazil", "unknown"]
        keys = {value: make_key(Dimension.PATH, value) for value in values}

        assert len(set(keys.values())) == len(values)
        assert make_key(Dimension.COUNTRY, "Brazil") != make_key(Dimension.STATE, "Brazil")

    def test_deterministic(self):
        """Same input, same key."""
        assert make_key(Dimension.CITY, "Porto") == make_key(Dimension.CITY, "Porto")

    def test_global_total(self):
        """The global total key is fixed."""
        assert GLOBAL_TOTAL_KEY == "site_total_views_v2"


class TestMarkerKeys:
    """Tests for make_marker_key."""

    def test_site_wide_marker(self):
        """Site-wide markers scope the witness alone."""
        assert make_marker_key("203.0.113.7") == "seen_visitor_203_0_113_7_v1"

    def test_scoped_marker(self):
        """Scoped markers include dimension and value."""
        assert make_marker_key("203.0.113.7", Dimension.PATH, "/") == "seen_path_home_203_0_113_7_v1"
        assert (
            make_marker_key("2001:db8::1", Dimension.COUNTRY, "Brazil")
            == "seen_country_brazil_2001_db8__1_v1"
        )


class TestLastNDayKeys:
    """Tests for last_n_day_keys."""

    def test_newest_first(self):
        """Keys run from today backwards."""
        keys = last_n_day_keys(3, datetime(2024, 3, 1, 0, 5))
        assert keys == [
            "day_2024_03_01_views_v1",
            "day_2024_02_29_views_v1",
            "day_2024_02_28_views_v1",
        ]

    def test_no_repeated_or_skipped_days(self):
        """Thirty distinct consecutive days."""
        keys = last_n_day_keys(30, datetime(2024, 11, 3, 23, 59))
        assert len(keys) == 30
        assert len(set(keys)) == 30
        assert keys[-1] == "day_2024_10_05_views_v1"

    def test_zero_days(self):
        """An empty window has no keys."""
        assert last_n_day_keys(0, datetime(2024, 1, 1)) == []
