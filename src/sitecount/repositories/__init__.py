"""Repository classes for remote counters and local state."""

from sitecount.repositories.counter import CounterRepository
from sitecount.repositories.local_store import (
    JsonFileStorage,
    KeyValueStorage,
    LocalStore,
    MemoryStorage,
)

__all__ = [
    "CounterRepository",
    "JsonFileStorage",
    "KeyValueStorage",
    "LocalStore",
    "MemoryStorage",
]
