"""Interfaces (protocols) for partialql."""

from partialql.core.interfaces.cache_store import ICachePipe, ICacheStore
from partialql.core.interfaces.invalidation_strategy import IInvalidationStrategy
from partialql.core.interfaces.key_builder import IKeyBuilder
from partialql.core.interfaces.serializer import ISerializer

__all__ = [
    "ICachePipe",
    "ICacheStore",
    "IInvalidationStrategy",
    "IKeyBuilder",
    "ISerializer",
]
