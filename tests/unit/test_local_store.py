"""Tests for the local store."""

import json

import pytest

from sitecount.models.visit import GeoLocation, VisitRecord
from sitecount.repositories.local_store import (
    GEO_CACHE_KEY,
    VISIT_LOG_KEY,
    JsonFileStorage,
    LocalStore,
    MemoryStorage,
)
from sitecount.utils.exceptions import StorageError


def make_visit(path="/", visitor_id="visitor-1"):
    return VisitRecord(visitor_id=visitor_id, path=path, referrer="direct")


class BrokenStorage:
    """Storage backend whose disk is gone."""

    def get_item(self, key):
        raise OSError("disk unavailable")

    def set_item(self, key, value):
        raise OSError("disk unavailable")

    def remove_item(self, key):
        raise OSError("disk unavailable")


class TestVisitorId:
    """Tests for the persisted visitor id."""

    def test_created_once(self, local_store):
        visitor_id = local_store.get_or_create_visitor_id()

        assert len(visitor_id) == 26
        assert local_store.get_or_create_visitor_id() == visitor_id

    def test_storage_failure(self):
        store = LocalStore(BrokenStorage())

        with pytest.raises(StorageError) as exc_info:
            store.get_or_create_visitor_id()

        assert exc_info.value.error_code == "STORAGE_FAILED"


class TestVisitLog:
    """Tests for the capped visit log."""

    def test_append_and_read(self, local_store):
        assert local_store.append_visit(make_visit("/")) == 1
        assert local_store.append_visit(make_visit("/about")) == 2

        visits = local_store.get_visits()
        assert [visit.path for visit in visits] == ["/", "/about"]

    def test_oldest_evicted(self):
        """Only the most recent entries are kept."""
        store = LocalStore(visit_log_limit=3)
        for index in range(5):
            store.append_visit(make_visit(f"/page-{index}"))

        assert [visit.path for visit in store.get_visits()] == ["/page-2", "/page-3", "/page-4"]

    def test_corrupt_log_discarded(self):
        storage = MemoryStorage({VISIT_LOG_KEY: "{not json"})
        store = LocalStore(storage)

        assert store.get_visits() == []
        assert store.append_visit(make_visit()) == 1

    def test_invalid_entries_skipped(self):
        storage = MemoryStorage({VISIT_LOG_KEY: json.dumps([{"path": "/"}, "junk"])})
        store = LocalStore(storage)
        store.append_visit(make_visit("/ok"))

        assert [visit.path for visit in store.get_visits()] == ["/ok"]


class TestGeoCache:
    """Tests for the geolocation cache."""

    def test_fresh_entry_returned(self, clock):
        store = LocalStore(geo_cache_ttl=60, clock=clock)
        geo = GeoLocation(ip="198.51.100.2", country="Portugal", region="Lisbon", city="Lisbon")

        store.cache_geo(geo)
        clock.advance(59)

        assert store.get_cached_geo() == geo

    def test_expired_entry_ignored(self, clock):
        store = LocalStore(geo_cache_ttl=60, clock=clock)
        store.cache_geo(GeoLocation(ip="198.51.100.2"))

        clock.advance(61)

        assert store.get_cached_geo() is None

    def test_unreadable_entry_ignored(self):
        store = LocalStore(MemoryStorage({GEO_CACHE_KEY: '{"geo": 1}'}))
        assert store.get_cached_geo() is None


class TestJsonFileStorage:
    """Tests for the on-disk backend."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "state" / "sitecount.json"
        JsonFileStorage(path).set_item("a", "1")

        assert JsonFileStorage(path).get_item("a") == "1"

    def test_remove_item(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "sitecount.json")
        storage.set_item("a", "1")

        storage.remove_item("a")

        assert storage.get_item("a") is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "sitecount.json"
        path.write_text("[[[", encoding="utf-8")
        storage = JsonFileStorage(path)

        assert storage.get_item("a") is None
        storage.set_item("a", "1")
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": "1"}

    def test_visitor_id_survives_restart(self, tmp_path):
        path = tmp_path / "sitecount.json"
        visitor_id = LocalStore(JsonFileStorage(path)).get_or_create_visitor_id()

        assert LocalStore(JsonFileStorage(path)).get_or_create_visitor_id() == visitor_id

    def test_undecodable_file_starts_empty(self, tmp_path):
        """A file that is not valid UTF-8 is treated as corrupt."""
        path = tmp_path / "sitecount.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        storage = JsonFileStorage(path)

        assert storage.get_item("a") is None
        assert LocalStore(storage).get_visits() == []


class TestStorageErrors:
    """Tests for backend error wrapping."""

    def test_value_error_wrapped(self):
        """Backend decode errors surface as StorageError."""

        class UndecodableStorage(MemoryStorage):
            def get_item(self, key):
                raise ValueError("cannot decode")

        store = LocalStore(UndecodableStorage())

        with pytest.raises(StorageError):
            store.get_cached_geo()
