"""Cache backend factory for relcache."""

from __future__ import annotations

from relcache.cache.backend import CacheBackend, InMemoryCacheBackend
from relcache.cache.redis import RedisCacheBackend, create_redis
from relcache.config import Settings, settings
from relcache.errors import BackendConfigError


def create_backend(config: Settings | None = None) -> CacheBackend:
    """Build a new CacheBackend based on settings.

    Each call returns a fresh backend; callers own it and pass it on to
    ModelCache explicitly.
    """
    config = config or settings

    backend_type = config.cache_backend.lower()
    if backend_type == "redis":
        if not config.redis_url:
            raise BackendConfigError("REDIS_URL is required for cache_backend='redis'")
        return RedisCacheBackend(create_redis(config.redis_url), prefix=config.key_prefix)
    if backend_type == "memory":
        return InMemoryCacheBackend()

    raise BackendConfigError("Unsupported cache_backend. Supported values: memory, redis.")
