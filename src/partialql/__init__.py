"""partialql - Invalidation-aware partial response caching for GraphQL.

Stored responses are split into entities. When an entity changes, only
the parts of a response depending on it are re-executed; everything else
is served from the cache and the fresh parts are merged in.

Example:
    from graphql import build_schema, parse
    from partialql import (
        InMemoryCacheStore,
        LazyInvalidationStrategy,
        PartialCacheService,
        SchemaConfigParser,
        bind_execute,
        get_cache_directives_sdl,
        prepare_document,
    )

    type_defs = get_cache_directives_sdl() + '''
        type Query {
            todo(id: ID!): Todo @cacheResolver
            todos: [Todo!]!
        }

        type Todo @cacheEntity(ttl: 60) {
            id: ID!
            text: String!
        }
    '''

    schema = build_schema(type_defs)
    schema_config = SchemaConfigParser().parse_schema(schema)

    cache_service = PartialCacheService(
        strategy=LazyInvalidationStrategy(InMemoryCacheStore()),
        cache_resolvers=schema_config.cache_resolvers,
    )

    document = prepare_document(parse("{ todos { id text } }"), schema_config)
    result = await cache_service.execute(bind_execute(schema, root_value), document)

    # Later, after a todo changed
    await cache_service.invalidate_entities(["Todo:1"])
"""

from partialql.core.entities import (
    CacheMetadata,
    CacheResolver,
    EntityRecord,
    EntityWithLocation,
    PartialCacheConfig,
    PartialExecutionOpts,
    PathPart,
)
from partialql.core.errors import (
    CacheResolutionError,
    CacheValidationError,
    DataPathError,
    PartialCacheError,
    SerializationError,
)
from partialql.core.interfaces import (
    ICachePipe,
    ICacheStore,
    IInvalidationStrategy,
    IKeyBuilder,
    ISerializer,
)
from partialql.core.services import (
    CACHE_DIRECTIVES_SDL,
    EntityTree,
    NoAliasConventionConflictsRule,
    PartialCacheService,
    SchemaConfig,
    SchemaConfigParser,
    bind_execute,
    get_cache_directives_sdl,
    get_partial_recache_query,
    layered_cache_execute,
    prepare_client_document,
    prepare_document,
)
from partialql.decorators import configure, invalidates
from partialql.infrastructure import (
    DefaultKeyBuilder,
    InMemoryCacheStore,
    JsonSerializer,
    RedisCacheStore,
)
from partialql.strategies import EagerInvalidationStrategy, LazyInvalidationStrategy

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core entities
    "CacheMetadata",
    "CacheResolver",
    "EntityRecord",
    "EntityWithLocation",
    "PartialCacheConfig",
    "PartialExecutionOpts",
    "PathPart",
    # Errors
    "PartialCacheError",
    "CacheResolutionError",
    "CacheValidationError",
    "DataPathError",
    "SerializationError",
    # Core interfaces
    "ICachePipe",
    "ICacheStore",
    "IInvalidationStrategy",
    "IKeyBuilder",
    "ISerializer",
    # Schema and documents
    "CACHE_DIRECTIVES_SDL",
    "SchemaConfig",
    "SchemaConfigParser",
    "get_cache_directives_sdl",
    "prepare_document",
    "prepare_client_document",
    "NoAliasConventionConflictsRule",
    # Core services
    "EntityTree",
    "PartialCacheService",
    "bind_execute",
    "get_partial_recache_query",
    "layered_cache_execute",
    # Strategies
    "EagerInvalidationStrategy",
    "LazyInvalidationStrategy",
    # Infrastructure implementations
    "DefaultKeyBuilder",
    "InMemoryCacheStore",
    "JsonSerializer",
    "RedisCacheStore",
    # Decorators
    "configure",
    "invalidates",
]
