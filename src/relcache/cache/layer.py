"""Read-through cache for entities, collections and relations.

ModelCache implements the cache-aside pattern on top of an injected
CacheBackend and EntityStore:
- get_* methods return the cached value or load it from the store and cache it
- find_* methods only look in the cache
- flush_* methods drop entries

A cache miss is never an error. Exceptions raised by the entity store or by
the backend propagate to the caller unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, TypeVar

from relcache.cache.backend import CacheBackend, Ttl, ttl_seconds
from relcache.cache.keys import CacheKeys
from relcache.config import settings
from relcache.errors import NotCacheableError
from relcache.observability.metrics import MetricsRegistry, get_metrics
from relcache.relations import Relation, cacheable_relations, is_cacheable, table_name

if TYPE_CHECKING:
    from relcache.persistence.base import EntityStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ModelCache:
    """Cache operations for cacheable entity types.

    Entries are only ever written by reads. Every method taking a model or
    an entity rejects types that do not derive from Cacheable.
    """

    def __init__(
        self,
        backend: CacheBackend,
        store: EntityStore,
        default_ttl: int | None = None,
        metrics: MetricsRegistry | None = None,
    ):
        self.backend = backend
        self.store = store
        self.default_ttl = settings.default_ttl if default_ttl is None else default_ttl
        self.metrics = metrics or get_metrics()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_cacheable(obj: Any) -> None:
        if not is_cacheable(obj):
            raise NotCacheableError(obj if isinstance(obj, type) else type(obj))

    def _remember(self, kind: str, key: str, ttl: Ttl | None, producer: Callable[[], T]) -> T:
        """Backend remember() with hit/miss accounting."""
        missed = False

        def load() -> T:
            nonlocal missed
            missed = True
            return producer()

        value = self.backend.remember(key, ttl_seconds(ttl, self.default_ttl), load)
        self._record(kind, key, hit=not missed)
        return value

    def _record(self, kind: str, key: str, hit: bool) -> None:
        if hit:
            self.metrics.cache_hits_total.labels(kind=kind).inc()
        else:
            self.metrics.cache_misses_total.labels(kind=kind).inc()
        logger.debug(f"Cache {'hit' if hit else 'miss'}: {key}")

    def _forget(self, kind: str, key: str) -> bool:
        forgotten = self.backend.forget(key)
        self.metrics.cache_flushes_total.labels(kind=kind).inc()
        logger.debug(f"Flushed cache key: {key}")
        return forgotten

    def cache_key(self, entity: Any, relation: str | None = None) -> str:
        """Key of an entity, or of one of its relations."""
        if relation is None:
            return CacheKeys.entity_key(table_name(entity), entity.id)
        return CacheKeys.relation_key(table_name(entity), entity.id, relation)

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def get_all_cached(self, model: type, ttl: Ttl | None = None) -> list[Any]:
        """Return the cached full collection of ``model``, loading it on a miss."""
        self._require_cacheable(model)
        key = CacheKeys.type_key(table_name(model))
        return self._remember("collection", key, ttl, lambda: list(self.store.all(model)))

    def flush_all_cached(self, model: type) -> bool:
        """Drop the cached full collection of ``model``."""
        return self._forget("collection", CacheKeys.type_key(table_name(model)))

    # -------------------------------------------------------------------------
    # Entities
    # -------------------------------------------------------------------------

    def get_cached(self, model: type, entity_id: Any, ttl: Ttl | None = None) -> Any | None:
        """Return a cached entity, loading it from the store on a miss.

        Returns None when the store has no such entity; that result is not
        cached.
        """
        self._require_cacheable(model)
        key = CacheKeys.entity_key(table_name(model), entity_id)

        entity = self.backend.get(key)
        if entity is not None:
            self._record("entity", key, hit=True)
            return entity

        return self._remember("entity", key, ttl, lambda: self.store.find(model, entity_id))

    def find_cached(self, model: type, entity_id: Any) -> Any | None:
        """Return the cached entity if present. Never touches the store."""
        self._require_cacheable(model)
        return self.backend.get(CacheKeys.entity_key(table_name(model), entity_id))

    def flush_cache(self, entity: Any) -> bool:
        """Drop the cached copy of ``entity``."""
        self._forget("entity", self.cache_key(entity))
        return True

    # -------------------------------------------------------------------------
    # Relations
    # -------------------------------------------------------------------------

    def _relation(self, entity: Any, name: str) -> Relation | None:
        result = getattr(entity, name)()
        if result is None:
            return None
        if not isinstance(result, Relation):
            raise TypeError(f"{type(entity).__qualname__}.{name} is not a relation accessor")
        self._require_cacheable(result.related)
        return result

    def get_cached_relation(self, entity: Any, relation: str, ttl: Ttl | None = None) -> Any | None:
        """Return a cached relation of ``entity``, materializing it on a miss.

        Passing ``ttl`` forces a reload from the store and stores the fresh
        value with that TTL. Returns None when the accessor yields no
        relation.
        """
        self._require_cacheable(entity)
        key = self.cache_key(entity, relation)

        if ttl is None:
            cached = self.backend.get(key)
            if cached is not None:
                self._record("relation", key, hit=True)
                return cached

        resolved = self._relation(entity, relation)
        if resolved is None:
            if ttl is not None:
                self.backend.forget(key)
            return None

        if ttl is None:
            return self._remember("relation", key, ttl, resolved.get)

        value = resolved.get()
        self._record("relation", key, hit=False)
        if value is None:
            # A forced reload that finds nothing must not leave the old value behind
            self.backend.forget(key)
        else:
            self.backend.put(key, value, ttl_seconds(ttl, self.default_ttl))
        return value

    def find_cached_relation(self, entity: Any, relation: str) -> Any | None:
        """Return the cached relation if present. Never touches the store."""
        self._require_cacheable(entity)
        return self.backend.get(self.cache_key(entity, relation))

    def load_relation(self, entity: Any, relation: str) -> Any | None:
        """Return the cached relation, or a fresh one without caching it.

        Used on the write path, where nothing may be added to the cache.
        """
        cached = self.find_cached_relation(entity, relation)
        if cached is not None:
            return cached

        resolved = self._relation(entity, relation)
        return None if resolved is None else resolved.get()

    def flush_cached_relation(self, entity: Any, relation: str) -> bool:
        """Drop one cached relation of ``entity``."""
        return self._forget("relation", self.cache_key(entity, relation))

    def flush_cached_relations(self, entity: Any, relations: Iterable[str] | None = None) -> bool:
        """Drop several cached relations of ``entity``.

        Without ``relations`` every cacheable relation is discovered and
        dropped.
        """
        if relations is None:
            relations = cacheable_relations(entity)

        for relation in relations:
            self.flush_cached_relation(entity, relation)
        return True
