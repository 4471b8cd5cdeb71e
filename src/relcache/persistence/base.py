"""Entity store interface.

The entity store owns the authoritative records. relcache needs three
things from it: look up one entity, list all entities of a type, and
subscribe to lifecycle events.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

EntityHandler = Callable[[Any], None]

# created/updated/saved fire after the write, deleting before and deleted after
LIFECYCLE_EVENTS = frozenset({"created", "updated", "saved", "deleting", "deleted"})


class EntityStore(ABC):
    """Abstract base class for entity stores.

    Subclasses implement lookups; event subscription and dispatch are shared.
    Handlers registered for a class also receive events of its subclasses.
    Handler exceptions propagate to whoever triggered the write.
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[type, str], list[EntityHandler]] = defaultdict(list)

    @abstractmethod
    def find(self, model: type, entity_id: Any) -> Any | None:
        """Return the entity with ``entity_id``, or None."""
        ...

    @abstractmethod
    def all(self, model: type) -> list[Any]:
        """Return every entity of ``model``."""
        ...

    def on(self, model: type, event: str, handler: EntityHandler) -> None:
        """Subscribe ``handler`` to ``event`` for ``model``."""
        if event not in LIFECYCLE_EVENTS:
            raise ValueError(f"Unknown lifecycle event {event!r}")
        self._handlers[(model, event)].append(handler)
        handler_name = getattr(handler, "__name__", handler.__class__.__name__)
        logger.debug(f"Registered {event} handler for {model.__qualname__}: {handler_name}")

    def emit(self, event: str, entity: Any) -> None:
        """Call every handler subscribed to ``event`` for the entity's type."""
        for cls in type(entity).__mro__:
            for handler in self._handlers.get((cls, event), ()):
                handler(entity)
