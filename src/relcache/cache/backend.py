"""Cache backend interface and in-process implementation.

A backend is a plain TTL key-value store. relcache only needs four
operations from it: remember, get, put and forget. Anything smarter
(eviction, replication, retries) belongs to the backend itself.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Accepted TTL forms: seconds, a duration, or an absolute expiry time
Ttl = Union[int, float, timedelta, datetime]


def ttl_seconds(ttl: Ttl | None, default: int) -> int:
    """Normalize a TTL to whole seconds.

    None falls back to ``default``. A datetime is an absolute expiry and is
    measured against the current time in its own timezone. The result may be
    zero or negative when the expiry already passed; callers treat that as
    "do not store".
    """
    if ttl is None:
        return default
    if isinstance(ttl, datetime):
        ttl = ttl - datetime.now(ttl.tzinfo)
    if isinstance(ttl, timedelta):
        return int(ttl.total_seconds())
    return int(ttl)


class CacheBackend(ABC):
    """Abstract base class for cache backends."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        ...

    @abstractmethod
    def put(self, key: str, value: Any, ttl: int) -> None:
        """Store a value for ``ttl`` seconds."""
        ...

    @abstractmethod
    def forget(self, key: str) -> bool:
        """Delete a key.

        Idempotent: returns True whether or not the key existed.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry owned by this backend."""
        ...

    def remember(self, key: str, ttl: int, producer: Callable[[], T]) -> T:
        """Return the cached value, computing and storing it on a miss.

        None results are returned but not stored, so a later call asks the
        producer again. A non-positive TTL skips the store as well.
        """
        cached = self.get(key)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        value = producer()
        if value is not None and ttl > 0:
            self.put(key, value, ttl)
        return value


class InMemoryCacheBackend(CacheBackend):
    """Dictionary-backed cache for single-process use and tests.

    Values are held by reference. Expiry is checked lazily on read against
    a monotonic clock, which can be replaced for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: Any, ttl: int) -> None:
        if ttl <= 0:
            self._entries.pop(key, None)
            return
        self._entries[key] = (value, self._clock() + ttl)

    def forget(self, key: str) -> bool:
        self._entries.pop(key, None)
        return True

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, expires_at in self._entries.values() if expires_at > now)

    def keys(self) -> list[str]:
        """Live keys, mostly useful for assertions in tests."""
        now = self._clock()
        return [key for key, (_, expires_at) in self._entries.items() if expires_at > now]
