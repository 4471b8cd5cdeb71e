"""Prometheus metrics for relcache.

Provides cache metrics collection:
- Hits and misses per kind of entry (entity, collection, relation)
- Flushed keys per kind
- Lifecycle events handled by the invalidation engine

Usage:
    from relcache.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(kind="entity").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import CollectorRegistry, Counter, generate_latest

from relcache.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    cache_hits_total: Any = field(default_factory=NoOpMetric)
    cache_misses_total: Any = field(default_factory=NoOpMetric)
    cache_flushes_total: Any = field(default_factory=NoOpMetric)
    invalidations_total: Any = field(default_factory=NoOpMetric)

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, enabled: bool | None = None) -> None:
        """Initialize Prometheus metrics on a dedicated collector registry."""
        if self._initialized:
            return

        enabled = settings.enable_metrics if enabled is None else enabled
        if not enabled:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = CollectorRegistry()

        self.cache_hits_total = Counter(
            "relcache_cache_hits_total",
            "Cache hits",
            ["kind"],
            registry=self._registry,
        )

        self.cache_misses_total = Counter(
            "relcache_cache_misses_total",
            "Cache misses",
            ["kind"],
            registry=self._registry,
        )

        self.cache_flushes_total = Counter(
            "relcache_cache_flushes_total",
            "Cache keys flushed",
            ["kind"],
            registry=self._registry,
        )

        self.invalidations_total = Counter(
            "relcache_invalidations_total",
            "Lifecycle events handled by the invalidation engine",
            ["event"],
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    @property
    def registry(self) -> CollectorRegistry | None:
        return self._registry

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
