"""Infrastructure layer: stores, key builders and serializers."""

from partialql.infrastructure.key_builders import DefaultKeyBuilder
from partialql.infrastructure.serializers import JsonSerializer
from partialql.infrastructure.stores import InMemoryCacheStore, RedisCacheStore

__all__ = [
    "DefaultKeyBuilder",
    "InMemoryCacheStore",
    "JsonSerializer",
    "RedisCacheStore",
]
