"""Local persisted state: visitor id, visit log and geolocation cache.

Values are strings, as in a browser's local storage, so the same
LocalStore works over an in-memory dict or a JSON file on disk. The visit
log is capped so storage does not grow without bound; the oldest entries
go first.
"""

import json
import os
import threading
import time
from pathlib import Path
from typing import Callable, Protocol

import structlog
from pydantic import ValidationError as PydanticValidationError

from sitecount.models.base import generate_ulid
from sitecount.models.visit import GeoLocation, VisitRecord
from sitecount.utils.exceptions import StorageError

logger = structlog.get_logger()

VISITOR_ID_KEY = "sitecount_visitor_id"
VISIT_LOG_KEY = "sitecount_visit_log"
GEO_CACHE_KEY = "sitecount_geo_cache"

# Cap the visit log to prevent unbounded growth
DEFAULT_VISIT_LOG_LIMIT = 200
DEFAULT_GEO_CACHE_TTL = 24 * 60 * 60


class KeyValueStorage(Protocol):
    """String key-value backend."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage backend."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """Storage backend persisting every item in one JSON object on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        """Read current items."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Local storage file is corrupt, starting empty", path=str(self.path))
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, items: dict[str, str]) -> None:
        """Atomically persist all items."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(items), encoding="utf-8")
        os.replace(tmp, self.path)

    def get_item(self, key: str) -> str | None:
        with self._lock:
            value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read_all()
            items[key] = value
            self._write_all(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read_all()
            if items.pop(key, None) is not None:
                self._write_all(items)


class LocalStore:
    """Visitor id, visit log and geolocation cache over a storage backend."""

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        *,
        visit_log_limit: int = DEFAULT_VISIT_LOG_LIMIT,
        geo_cache_ttl: float = DEFAULT_GEO_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the local store.

        Args:
            storage: Backend; defaults to in-memory.
            visit_log_limit: Most recent visits kept in the log.
            geo_cache_ttl: Seconds a cached geolocation stays valid.
            clock: Wall-clock time source.
        """
        self.storage = storage if storage is not None else MemoryStorage()
        self.visit_log_limit = max(1, visit_log_limit)
        self.geo_cache_ttl = geo_cache_ttl
        self.clock = clock

    def _get(self, key: str) -> str | None:
        try:
            return self.storage.get_item(key)
        except (OSError, ValueError) as e:
            raise StorageError(key, str(e)) from e

    def _set(self, key: str, value: str) -> None:
        try:
            self.storage.set_item(key, value)
        except (OSError, ValueError) as e:
            raise StorageError(key, str(e)) from e

    def get_or_create_visitor_id(self) -> str:
        """Return the persisted visitor id, creating it on first use.

        Raises:
            StorageError: If the backend cannot be read or written.
        """
        visitor_id = self._get(VISITOR_ID_KEY)
        if visitor_id:
            return visitor_id

        visitor_id = generate_ulid()
        self._set(VISITOR_ID_KEY, visitor_id)
        logger.debug("Created local visitor id", visitor_id=visitor_id)
        return visitor_id

    def _load_log(self) -> list[dict]:
        raw = self._get(VISIT_LOG_KEY)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Visit log is corrupt, discarding it")
            return []
        return [entry for entry in entries if isinstance(entry, dict)] if isinstance(entries, list) else []

    def append_visit(self, record: VisitRecord) -> int:
        """Append a visit, evicting the oldest entries past the limit.

        Returns:
            Number of entries in the log after the append.

        Raises:
            StorageError: If the backend cannot be read or written.
        """
        entries = self._load_log()
        entries.append(record.to_storage())
        entries = entries[-self.visit_log_limit:]
        self._set(VISIT_LOG_KEY, json.dumps(entries))
        return len(entries)

    def get_visits(self) -> list[VisitRecord]:
        """Return the logged visits, oldest first.

        Entries that no longer validate are skipped.
        """
        visits = []
        for entry in self._load_log():
            try:
                visits.append(VisitRecord.from_storage(entry))
            except PydanticValidationError:
                logger.debug("Skipping invalid visit log entry", entry_id=entry.get("id"))
        return visits

    def get_cached_geo(self) -> GeoLocation | None:
        """Return the cached geolocation if it has not expired."""
        raw = self._get(GEO_CACHE_KEY)
        if not raw:
            return None
        try:
            cached = json.loads(raw)
            cached_at = float(cached["cached_at"])
            geo = GeoLocation.model_validate(cached["geo"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.debug("Ignoring unreadable geolocation cache")
            return None

        if self.clock() - cached_at > self.geo_cache_ttl:
            return None
        return geo

    def cache_geo(self, geo: GeoLocation) -> None:
        """Cache a resolved geolocation.

        Raises:
            StorageError: If the backend cannot be written.
        """
        payload = {"cached_at": self.clock(), "geo": geo.model_dump(mode="json")}
        self._set(GEO_CACHE_KEY, json.dumps(payload))
