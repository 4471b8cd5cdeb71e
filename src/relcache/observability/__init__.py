"""Observability module for relcache.

Provides metrics and structured logging:
- Prometheus counters for cache hits, misses, flushes and invalidations
- JSON structured logging with entity context
"""

from relcache.observability.logging import (
    LogContext,
    configure_logging,
    entity_id_var,
    entity_type_var,
)
from relcache.observability.metrics import get_metrics, metrics_registry

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "entity_type_var",
    "entity_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
]
