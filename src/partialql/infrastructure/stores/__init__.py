"""Cache stores."""

from partialql.infrastructure.stores.memory import InMemoryCacheStore, InMemoryCachePipe
from partialql.infrastructure.stores.redis_store import RedisCachePipe, RedisCacheStore

__all__ = [
    "InMemoryCachePipe",
    "InMemoryCacheStore",
    "RedisCachePipe",
    "RedisCacheStore",
]
