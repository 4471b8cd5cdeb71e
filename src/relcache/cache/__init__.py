"""Cache layer for relcache.

Provides the storage side of the cache:
- Key schema shared by every backend
- In-memory and Redis backends behind one CacheBackend interface
- Backend selection from settings

The read-through layer (ModelCache) and the invalidation engine
(CacheInvalidator) live in relcache.cache.layer and
relcache.cache.invalidation.
"""

from relcache.cache.backend import CacheBackend, InMemoryCacheBackend, ttl_seconds
from relcache.cache.factory import create_backend
from relcache.cache.keys import CacheKeys
from relcache.cache.redis import RedisCacheBackend, create_redis

__all__ = [
    # Keys
    "CacheKeys",
    # Backends
    "CacheBackend",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "create_backend",
    "create_redis",
    "ttl_seconds",
]
