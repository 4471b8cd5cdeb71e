"""Relationship-aware entity cache.

Caches entities, entity collections and relation traversals, and drops
every entry a write could have made stale, on the written entity and on
the entities related to it.
"""

from relcache.cache.backend import CacheBackend, InMemoryCacheBackend
from relcache.cache.invalidation import CacheInvalidator, LifecycleEvent
from relcache.cache.keys import CacheKeys
from relcache.cache.layer import ModelCache
from relcache.errors import (
    BackendConfigError,
    InvalidKeyError,
    NotAnEntityError,
    NotCacheableError,
    RelcacheError,
)
from relcache.persistence.base import EntityStore
from relcache.relations import Cacheable, Relation, cacheable_relations, relation

__all__ = [
    "Cacheable",
    "Relation",
    "relation",
    "cacheable_relations",
    "CacheKeys",
    "CacheBackend",
    "InMemoryCacheBackend",
    "ModelCache",
    "CacheInvalidator",
    "LifecycleEvent",
    "EntityStore",
    # Errors
    "RelcacheError",
    "NotAnEntityError",
    "NotCacheableError",
    "InvalidKeyError",
    "BackendConfigError",
]
