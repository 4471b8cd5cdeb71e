"""Cache key schema for relcache.

Key format: {type}[_{id}][:{relation}]

Where:
- type: entity type name, the table name of the model ("products")
- id: entity identifier, rendered with str()
- relation: name of a relationship accessor ("reviews")

Examples: "products", "products_1", "products_1:reviews"

Keys are the only addressing scheme into the backend, so they must stay
stable across restarts. Type names never contain "_" or ":", so the first
"_" always ends the type. Ids and relation names may contain "_" but never
":". Offending segments raise InvalidKeyError.
"""

from __future__ import annotations

from typing import Any

from relcache.errors import InvalidKeyError

ID_SEPARATOR = "_"
RELATION_SEPARATOR = ":"


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    @staticmethod
    def validate_type(type_name: str) -> str:
        """Return the type name, rejecting reserved separators."""
        if not type_name or ID_SEPARATOR in type_name or RELATION_SEPARATOR in type_name:
            raise InvalidKeyError("type name", type_name, ID_SEPARATOR + RELATION_SEPARATOR)
        return type_name

    @classmethod
    def type_key(cls, type_name: str) -> str:
        """Key for the full collection of a type."""
        return cls.validate_type(type_name)

    @classmethod
    def entity_key(cls, type_name: str, entity_id: Any) -> str:
        """Key for a single entity."""
        rendered = str(entity_id)
        if not rendered or RELATION_SEPARATOR in rendered:
            raise InvalidKeyError("entity id", entity_id, RELATION_SEPARATOR)
        return f"{cls.type_key(type_name)}{ID_SEPARATOR}{rendered}"

    @classmethod
    def relation_key(cls, type_name: str, entity_id: Any, relation: str) -> str:
        """Key for a materialized relation of a single entity."""
        if not relation or RELATION_SEPARATOR in relation:
            raise InvalidKeyError("relation name", relation, RELATION_SEPARATOR)
        return f"{cls.entity_key(type_name, entity_id)}{RELATION_SEPARATOR}{relation}"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str | None] | None:
        """Parse a cache key into its components.

        Returns None if the key doesn't match the expected format.
        """
        head, sep, relation = key.partition(RELATION_SEPARATOR)
        if not head or (sep and not relation) or RELATION_SEPARATOR in relation:
            return None

        type_name, id_sep, entity_id = head.partition(ID_SEPARATOR)
        if not type_name or (id_sep and not entity_id):
            return None
        if sep and not id_sep:
            # A relation always belongs to an entity
            return None

        return {
            "type": type_name,
            "id": entity_id or None,
            "relation": relation or None,
        }
