"""Entity stores for relcache.

This module provides:
- The EntityStore interface relcache reads from and subscribes to
- An in-memory store with an active-record Entity base
- A SQLAlchemy store deriving lifecycle events from session flushes
"""

from relcache.persistence.base import LIFECYCLE_EVENTS, EntityStore
from relcache.persistence.memory import Entity, InMemoryEntityStore
from relcache.persistence.sqlalchemy import SqlAlchemyEntityStore, query_relation

__all__ = [
    "EntityStore",
    "LIFECYCLE_EVENTS",
    # In-memory
    "Entity",
    "InMemoryEntityStore",
    # SQLAlchemy
    "SqlAlchemyEntityStore",
    "query_relation",
]
