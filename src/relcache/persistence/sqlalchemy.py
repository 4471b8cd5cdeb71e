"""SQLAlchemy entity store.

Adapts a synchronous ORM Session to the EntityStore interface. Lifecycle
events are derived from the session's flush events:

- before_flush: ``updated`` for modified instances, ``deleting`` for
  instances marked for deletion (their rows are still readable)
- after_flush: ``created`` for new instances (primary keys are assigned by
  then) and ``deleted``

Handlers run inside the flush, so relation accessors may query through the
same session without triggering a nested autoflush.

Reads hand out detached snapshots rather than the session's own instances,
so a cached value stays readable after the session commits or closes.
Lifecycle handlers still receive the live instance being flushed.

Relationship accessors build their Relation with ``query_relation``:

    class Review(Cacheable, Base):
        __tablename__ = "reviews"
        ...

        @relation
        def product(self) -> Relation:
            return query_relation(self, Product, Product.id == self.product_id, many=False)
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy import event, inspect, select
from sqlalchemy.orm import Session, make_transient_to_detached, object_session
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.exc import DetachedInstanceError

from relcache.persistence.base import EntityStore
from relcache.relations import Relation

logger = logging.getLogger(__name__)

T = TypeVar("T")


def detached_copy(obj: T) -> T:
    """Copy the loaded column values of ``obj`` into a detached instance.

    The copy belongs to no session and never refreshes itself. Relationship
    attributes are not carried over.
    """
    mapper = inspect(obj).mapper
    snapshot = mapper.class_manager.new_instance()
    for attr in mapper.column_attrs:
        set_committed_value(snapshot, attr.key, getattr(obj, attr.key))
    make_transient_to_detached(snapshot)
    return snapshot


def query_relation(entity: Any, related: type, *criteria: Any, many: bool = True) -> Relation:
    """Relation loading ``related`` rows matching ``criteria``.

    The query runs in the entity's own session and yields detached copies.
    Raises DetachedInstanceError for instances outside a session, such as
    copies read back from the cache.
    """
    session = object_session(entity)
    if session is None:
        raise DetachedInstanceError(f"{type(entity).__qualname__} instance is not bound to a Session")

    stmt = select(related).where(*criteria)
    if many:
        return Relation(
            related,
            lambda: [detached_copy(row) for row in session.scalars(stmt)],
            many=True,
        )

    def load_one() -> Any | None:
        row = session.scalars(stmt).first()
        return None if row is None else detached_copy(row)

    return Relation(related, load_one, many=False)


class SqlAlchemyEntityStore(EntityStore):
    """Entity store backed by a SQLAlchemy Session."""

    def __init__(self, session: Session):
        super().__init__()
        self.session = session
        self._listeners = [
            ("before_flush", self._before_flush),
            ("after_flush", self._after_flush),
        ]
        for name, fn in self._listeners:
            event.listen(session, name, fn)

    def close(self) -> None:
        """Stop listening to the session's flush events."""
        for name, fn in self._listeners:
            event.remove(self.session, name, fn)
        self._listeners = []

    def find(self, model: type, entity_id: Any) -> Any | None:
        row = self.session.get(model, entity_id)
        return None if row is None else detached_copy(row)

    def all(self, model: type) -> list[Any]:
        return [detached_copy(row) for row in self.session.scalars(select(model))]

    def _before_flush(self, session: Session, flush_context: Any, instances: Any) -> None:
        for obj in list(session.dirty):
            if session.is_modified(obj, include_collections=False):
                self.emit("updated", obj)

        for obj in list(session.deleted):
            self.emit("deleting", obj)

    def _after_flush(self, session: Session, flush_context: Any) -> None:
        for obj in list(session.new):
            self.emit("created", obj)

        for obj in list(session.deleted):
            self.emit("deleted", obj)
