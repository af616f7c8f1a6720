"""Domain entities for partialql."""

from partialql.core.entities.cache_config import PartialCacheConfig
from partialql.core.entities.cache_metadata import CacheMetadata
from partialql.core.entities.entity import (
    CacheResolver,
    CacheResolverMap,
    DataPath,
    EntityCacheResult,
    EntityRecord,
    EntityWithLocation,
    Id,
    KnownEntitiesMap,
    LinkStub,
    PartialExecutionOpts,
    PathPart,
    TypeLinkWithCoordinates,
    is_cache_resolved_entity,
)

__all__ = [
    "CacheMetadata",
    "CacheResolver",
    "CacheResolverMap",
    "DataPath",
    "EntityCacheResult",
    "EntityRecord",
    "EntityWithLocation",
    "Id",
    "KnownEntitiesMap",
    "LinkStub",
    "PartialCacheConfig",
    "PartialExecutionOpts",
    "PathPart",
    "TypeLinkWithCoordinates",
    "is_cache_resolved_entity",
]
