"""Relationship declaration and discovery.

Entity types opt into caching by deriving from ``Cacheable`` and mark their
relationship accessors with ``@relation``:

    class Product(Cacheable, Entity):
        __tablename__ = "products"

        @relation
        def reviews(self) -> Relation:
            return self.has_many(Review, "product_id")

An accessor takes no arguments and returns a ``Relation`` (or None when the
instance has no such relation). Accessors are collected once, when the class
is created, from the class body only; inherited accessors are not part of a
subclass's relation list.

Discovery still has to invoke every accessor to learn the related type, so
``cacheable_relations`` is not free. The invalidation engine calls it once
per lifecycle event.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, ClassVar, TypeVar

from relcache.cache.keys import CacheKeys
from relcache.errors import NotAnEntityError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

RELATION_MARKER = "__cache_relation__"


@dataclass(frozen=True)
class Relation:
    """A lazily loaded relationship to another entity type.

    ``loader`` is only called by ``get()``; building a Relation must not
    touch the entity store.
    """

    related: type
    loader: Callable[[], Any]
    many: bool = True

    def get(self) -> Any:
        """Materialize the relation.

        Returns a list for to-many relations and an instance or None for
        to-one relations.
        """
        result = self.loader()
        if self.many:
            return [] if result is None else list(result)
        return result


def relation(func: F) -> F:
    """Mark a zero-argument method as a relationship accessor."""
    params = list(inspect.signature(func).parameters.values())[1:]
    required = [
        p
        for p in params
        if p.default is inspect.Parameter.empty
        and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if required:
        raise TypeError(f"Relation accessor {func.__qualname__} must not take arguments")

    setattr(func, RELATION_MARKER, True)
    return func


class Cacheable:
    """Capability marker for entity types that take part in caching.

    Subclasses must be entity types: a concrete subclass without a string
    ``__tablename__`` raises NotAnEntityError while the class is created.
    Classes flagged ``__abstract__ = True`` are exempt, as in SQLAlchemy.
    """

    __cache_relations__: ClassVar[tuple[str, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)

        cls.__cache_relations__ = tuple(
            name
            for name, attr in vars(cls).items()
            if callable(attr) and getattr(attr, RELATION_MARKER, False)
        )

        if vars(cls).get("__abstract__", False):
            return

        name = getattr(cls, "__tablename__", None)
        if not isinstance(name, str):
            raise NotAnEntityError(cls)
        CacheKeys.validate_type(name)


def _class_of(obj: Any) -> type:
    return obj if isinstance(obj, type) else type(obj)


def is_cacheable(obj: Any) -> bool:
    """Whether a type (or the type of an instance) opted into caching."""
    return issubclass(_class_of(obj), Cacheable)


def table_name(obj: Any) -> str:
    """Cache namespace of a type or instance: its table name."""
    return str(_class_of(obj).__tablename__)


def lower_camel(name: str) -> str:
    """Lower-case the first character: ``ProductReview`` -> ``productReview``."""
    return name[:1].lower() + name[1:]


def reverse_relation_names(entity: Any) -> tuple[str, ...]:
    """Guess the accessor names that related types use to point back here.

    The guesses are the table name and the lower-camel-cased class name.
    If a related type names its accessor differently, its cached entry is
    left alone and only expires with its TTL.
    """
    names = (table_name(entity), lower_camel(_class_of(entity).__name__))
    return tuple(dict.fromkeys(names))


def related_instances(value: Any) -> list[Any]:
    """Flatten a materialized relation into a list of instances."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def declared_relations(obj: Any) -> Iterable[str]:
    """Accessor names declared directly on the entity's own class."""
    return _class_of(obj).__dict__.get("__cache_relations__", ())


def cacheable_relations(entity: Any) -> list[str]:
    """Names of relations on ``entity`` that point to another cacheable type.

    Each declared accessor is invoked. Accessors that raise (typically
    because a foreign key is not set yet) or return None are skipped; the
    scan always runs to completion.
    """
    found: list[str] = []

    for name in declared_relations(entity):
        try:
            result = getattr(entity, name)()
        except Exception as e:
            logger.debug(f"Skipping relation {table_name(entity)}.{name}: {e!r}")
            continue

        if not isinstance(result, Relation):
            continue

        if is_cacheable(result.related):
            found.append(name)
        else:
            logger.debug(
                f"Skipping relation {table_name(entity)}.{name}: "
                f"{result.related.__qualname__} is not cacheable"
            )

    return found
