"""Exception hierarchy for relcache.

Cache misses are never errors. Failures raised by the entity store or the
cache backend propagate unchanged and are not wrapped here.
"""

from __future__ import annotations


class RelcacheError(Exception):
    """Base class for all relcache errors."""


class NotAnEntityError(RelcacheError, TypeError):
    """A class opted into caching without being an entity type.

    Raised while the class body is being created, so it surfaces at import
    time. It signals a programming error and is not meant to be handled.
    """

    def __init__(self, cls: type, reason: str = "has no string __tablename__"):
        self.cls = cls
        super().__init__(f"{cls.__module__}.{cls.__qualname__} is not an entity type: {reason}")


class NotCacheableError(RelcacheError, TypeError):
    """A model that does not opt into caching was handed to the cache layer."""

    def __init__(self, model: type):
        self.model = model
        super().__init__(f"{model.__qualname__} does not derive from Cacheable")


class InvalidKeyError(RelcacheError, ValueError):
    """A key segment contains a reserved separator character."""

    def __init__(self, segment: str, value: object, reserved: str):
        self.segment = segment
        self.value = value
        super().__init__(f"{segment} {value!r} must not contain any of {reserved!r}")


class BackendConfigError(RelcacheError, ValueError):
    """The configured cache backend is unknown or incomplete."""
