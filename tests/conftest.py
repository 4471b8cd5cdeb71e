"""Global pytest configuration and fixtures.

Every test gets its own cache backend and entity store; nothing is shared
through module-level singletons.
"""

from __future__ import annotations

import pytest

from relcache.cache.backend import InMemoryCacheBackend
from relcache.cache.invalidation import CacheInvalidator
from relcache.cache.layer import ModelCache
from relcache.observability.metrics import MetricsRegistry
from relcache.persistence.memory import InMemoryEntityStore
from tests.unit.models import Category, Product, Review, Supplier


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> InMemoryCacheBackend:
    """Fresh in-memory backend driven by the fake clock."""
    return InMemoryCacheBackend(clock=clock)


@pytest.fixture
def store() -> InMemoryEntityStore:
    """Fresh entity store with the sample models registered."""
    store = InMemoryEntityStore()
    store.register(Product, Review, Category, Supplier)
    return store


@pytest.fixture
def cache(backend: InMemoryCacheBackend, store: InMemoryEntityStore) -> ModelCache:
    return ModelCache(backend, store, metrics=MetricsRegistry())


@pytest.fixture
def invalidator(cache: ModelCache, store: InMemoryEntityStore) -> CacheInvalidator:
    """Invalidator bound to every cacheable sample model."""
    invalidator = CacheInvalidator(cache)
    invalidator.bind(store, Product, Review, Category)
    return invalidator
