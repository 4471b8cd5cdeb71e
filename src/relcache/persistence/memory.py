"""In-memory entity store with a small active-record base class.

Suitable for tests and single-process use. The store keeps its own copies
of entities, so instances handed out (and cached) are never the
authoritative records.

Example:
    store = InMemoryEntityStore()

    class Product(Cacheable, Entity):
        @relation
        def reviews(self) -> Relation:
            return self.has_many(Review, "product_id")

    store.register(Product, Review)
    product = Product.create(name="Lamp")
"""

from __future__ import annotations

import copy
import itertools
from collections import defaultdict
from typing import Any, ClassVar, TypeVar

from relcache.persistence.base import EntityStore
from relcache.relations import Relation, table_name

E = TypeVar("E", bound="Entity")


class Entity:
    """Active-record style entity bound to an InMemoryEntityStore.

    The table name defaults to the lower-cased class name plus "s".
    """

    __tablename__: ClassVar[str]
    _store: ClassVar[InMemoryEntityStore | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        # Set before the rest of the MRO runs, so Cacheable sees it
        if "__tablename__" not in vars(cls):
            cls.__tablename__ = f"{cls.__name__.lower()}s"
        super().__init_subclass__(**kwargs)

    def __init__(self, id: Any = None, **attributes: Any) -> None:
        self.id = id
        for name, value in attributes.items():
            setattr(self, name, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return vars(self) == vars(other)

    __hash__ = None  # type: ignore[assignment]

    # -------------------------------------------------------------------------
    # Store access
    # -------------------------------------------------------------------------

    @classmethod
    def store(cls) -> InMemoryEntityStore:
        if cls._store is None:
            raise RuntimeError(f"{cls.__qualname__} is not registered with an entity store")
        return cls._store

    @classmethod
    def find(cls: type[E], entity_id: Any) -> E | None:
        return cls.store().find(cls, entity_id)

    @classmethod
    def all(cls: type[E]) -> list[E]:
        return cls.store().all(cls)

    @classmethod
    def where(cls: type[E], **filters: Any) -> list[E]:
        return cls.store().where(cls, **filters)

    @classmethod
    def create(cls: type[E], **attributes: Any) -> E:
        entity = cls(**attributes)
        entity.save()
        return entity

    def save(self) -> None:
        self.store().save(self)

    def update(self, **attributes: Any) -> None:
        for name, value in attributes.items():
            setattr(self, name, value)
        self.save()

    def delete(self) -> None:
        self.store().delete(self)

    # -------------------------------------------------------------------------
    # Relationship helpers
    # -------------------------------------------------------------------------

    def has_many(self, related: type[Entity], foreign_key: str, local_key: str = "id") -> Relation:
        """Entities of ``related`` whose ``foreign_key`` points at this one."""
        value = getattr(self, local_key)
        return Relation(related, lambda: related.where(**{foreign_key: value}), many=True)

    def has_one(self, related: type[Entity], foreign_key: str, local_key: str = "id") -> Relation:
        """First entity of ``related`` whose ``foreign_key`` points at this one."""
        value = getattr(self, local_key)

        def load() -> Entity | None:
            matches = related.where(**{foreign_key: value})
            return matches[0] if matches else None

        return Relation(related, load, many=False)

    def belongs_to(self, related: type[Entity], foreign_key: str, owner_key: str = "id") -> Relation:
        """The ``related`` entity this one points at through ``foreign_key``.

        Raises AttributeError when the foreign key was never set.
        """
        value = getattr(self, foreign_key)

        def load() -> Entity | None:
            if value is None:
                return None
            if owner_key == "id":
                return related.find(value)
            matches = related.where(**{owner_key: value})
            return matches[0] if matches else None

        return Relation(related, load, many=False)


class InMemoryEntityStore(EntityStore):
    """Entity store holding copies of entities in per-table dictionaries."""

    def __init__(self) -> None:
        super().__init__()
        self._tables: dict[str, dict[Any, Entity]] = defaultdict(dict)
        self._sequences: dict[str, itertools.count[int]] = defaultdict(lambda: itertools.count(1))

    def register(self, *models: type[Entity]) -> None:
        """Bind entity classes to this store."""
        for model in models:
            model._store = self

    def find(self, model: type, entity_id: Any) -> Any | None:
        record = self._tables[table_name(model)].get(entity_id)
        return copy.copy(record) if record is not None else None

    def all(self, model: type) -> list[Any]:
        return [copy.copy(record) for record in self._tables[table_name(model)].values()]

    def where(self, model: type, **filters: Any) -> list[Any]:
        return [
            copy.copy(record)
            for record in self._tables[table_name(model)].values()
            if all(getattr(record, name, None) == value for name, value in filters.items())
        ]

    def save(self, entity: Entity) -> None:
        """Insert or update ``entity``, assigning an id to new rows."""
        table = self._tables[table_name(entity)]
        created = entity.id is None or entity.id not in table

        if entity.id is None:
            entity.id = next(self._sequences[table_name(entity)])
            while entity.id in table:
                entity.id = next(self._sequences[table_name(entity)])

        table[entity.id] = copy.copy(entity)

        self.emit("created" if created else "updated", entity)
        self.emit("saved", entity)

    def delete(self, entity: Entity) -> None:
        """Remove ``entity``; ``deleting`` fires while it can still be read."""
        table = self._tables[table_name(entity)]
        if entity.id not in table:
            return

        self.emit("deleting", entity)
        del table[entity.id]
        self.emit("deleted", entity)
