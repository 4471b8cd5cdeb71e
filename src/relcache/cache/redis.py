"""Redis cache backend for relcache.

Uses the synchronous redis-py client. Values are pickled so that entity
instances and lists of them survive the round trip.
"""

from __future__ import annotations

import logging
import pickle  # nosec B403 - values are written by this process only
from typing import TYPE_CHECKING, Any, cast

import redis

from relcache.cache.backend import CacheBackend
from relcache.config import settings

if TYPE_CHECKING:
    from redis import Redis

logger = logging.getLogger(__name__)


def create_redis(url: str | None = None) -> Redis:
    """Create a Redis client from a URL.

    Uses connection pooling for efficient connection management.
    """
    return redis.Redis.from_url(
        url or settings.redis_url,
        decode_responses=False,  # We're storing pickled bytes
    )


class RedisCacheBackend(CacheBackend):
    """Cache operations on a Redis server.

    Every key is prefixed with ``prefix`` so several caches can share one
    database. ``clear()`` only removes keys under that prefix and refuses
    to run without one.
    """

    def __init__(self, client: Redis, prefix: str = ""):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Any | None:
        raw = self.client.get(self._key(key))
        if raw is None:
            return None
        return pickle.loads(cast(bytes, raw))  # nosec B301

    def put(self, key: str, value: Any, ttl: int) -> None:
        if ttl <= 0:
            self.client.delete(self._key(key))
            return
        self.client.setex(self._key(key), ttl, pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL))

    def forget(self, key: str) -> bool:
        self.client.delete(self._key(key))
        return True

    def clear(self) -> None:
        if not self.prefix:
            raise ValueError("Refusing to clear a Redis backend without a key prefix")

        deleted = 0
        # Use SCAN to avoid blocking on large keyspaces
        for key in self.client.scan_iter(match=f"{self.prefix}*"):
            self.client.delete(key)
            deleted += 1
        logger.info(f"Cleared {deleted} cache entries under prefix {self.prefix!r}")

    def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def close(self) -> None:
        """Close Redis connections."""
        self.client.close()
