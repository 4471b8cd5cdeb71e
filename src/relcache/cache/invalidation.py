"""Cache invalidation driven by entity lifecycle events.

CacheInvalidator subscribes to the entity store's lifecycle events and drops
every cache entry a write could have made stale:

- created:  related caches, the type's collection
- updated:  related caches, the entity itself, the type's collection
- deleting: related caches, the entity itself, the type's collection

"Related caches" covers both directions. For each cacheable relation of the
entity, the entity's own relation entry is dropped, and on every related
instance the entries named after the reverse accessor guesses (table name
and lower-camel class name) are dropped too.

Example:
    cache = ModelCache(InMemoryCacheBackend(), store)
    invalidator = CacheInvalidator(cache)
    invalidator.bind(store, Product, Review)

    product.update(name="New name")  # products_1:reviews and
                                     # reviews_{id}:product are gone
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any

from relcache.errors import NotCacheableError
from relcache.observability.logging import LogContext
from relcache.relations import (
    cacheable_relations,
    is_cacheable,
    related_instances,
    reverse_relation_names,
    table_name,
)

if TYPE_CHECKING:
    from relcache.cache.layer import ModelCache
    from relcache.persistence.base import EntityStore

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    """Entity store events the invalidator reacts to."""

    CREATED = "created"
    UPDATED = "updated"
    DELETING = "deleting"  # Fired before the row is removed


class CacheInvalidator:
    """Keeps a ModelCache coherent with its entity store.

    Holds no state of its own between events; everything lives in the
    cache backend. Running a handler twice for the same write is harmless.
    """

    def __init__(self, cache: ModelCache):
        self.cache = cache

    def bind(self, store: EntityStore, *models: type) -> None:
        """Subscribe the lifecycle handlers for each model on ``store``."""
        for model in models:
            if not is_cacheable(model):
                raise NotCacheableError(model)

            store.on(model, LifecycleEvent.CREATED.value, self.handle_created)
            store.on(model, LifecycleEvent.UPDATED.value, self.handle_updated)
            store.on(model, LifecycleEvent.DELETING.value, self.handle_deleting)
            logger.info(f"Bound cache invalidation for {table_name(model)}")

    # -------------------------------------------------------------------------
    # Lifecycle handlers
    # -------------------------------------------------------------------------

    def handle(self, event: LifecycleEvent | str, entity: Any) -> None:
        """Dispatch a lifecycle event by name."""
        event = LifecycleEvent(event)
        if event is LifecycleEvent.CREATED:
            self.handle_created(entity)
        elif event is LifecycleEvent.UPDATED:
            self.handle_updated(entity)
        else:
            self.handle_deleting(entity)

    def handle_created(self, entity: Any) -> None:
        """Flush after an entity was created.

        A new id cannot have relation entries yet, but instances related to
        it may, and the collection snapshot no longer covers it.
        """
        with self._context(entity, LifecycleEvent.CREATED):
            self.flush_related_caches(entity)
            self.cache.flush_all_cached(type(entity))

    def handle_updated(self, entity: Any) -> None:
        """Flush after an entity was updated."""
        with self._context(entity, LifecycleEvent.UPDATED):
            self.flush_related_caches(entity)
            self.cache.flush_cache(entity)
            self.cache.flush_all_cached(type(entity))

    def handle_deleting(self, entity: Any) -> None:
        """Flush before an entity is deleted, while its relations still resolve."""
        with self._context(entity, LifecycleEvent.DELETING):
            self.flush_related_caches(entity)
            self.cache.flush_cache(entity)
            self.cache.flush_all_cached(type(entity))

    def _context(self, entity: Any, event: LifecycleEvent) -> LogContext:
        self.cache.metrics.invalidations_total.labels(event=event.value).inc()
        return LogContext(entity_type=table_name(entity), entity_id=entity.id, event=event.value)

    # -------------------------------------------------------------------------
    # Related cache flushing
    # -------------------------------------------------------------------------

    def flush_related_cache(self, entity: Any, relation: str) -> None:
        """Flush one relation of ``entity`` in both directions."""
        try:
            related = self.cache.load_relation(entity, relation)
            reverse_names = reverse_relation_names(entity)

            for instance in related_instances(related):
                for name in reverse_names:
                    self.cache.flush_cached_relation(instance, name)
        finally:
            # The own entry goes even when the reverse side could not be reached
            self.cache.flush_cached_relation(entity, relation)

    def flush_related_caches(self, entity: Any, relations: Iterable[str] | None = None) -> int:
        """Flush several relations of ``entity`` in both directions.

        Without ``relations`` every cacheable relation is discovered. A
        failure on one relation is logged and the remaining relations are
        still flushed. Returns the number of relations flushed cleanly.
        """
        if relations is None:
            relations = cacheable_relations(entity)

        flushed = 0
        for relation in relations:
            try:
                self.flush_related_cache(entity, relation)
                flushed += 1
            except Exception:
                logger.exception(f"Failed to flush relation {self.cache.cache_key(entity, relation)}")

        logger.debug(f"Flushed {flushed} related caches of {self.cache.cache_key(entity)}")
        return flushed
