"""Names shared between document rewriting and result processing."""

from graphql import OperationType

# Prefix of root-field aliases used to smuggle cache resolutions into a document
PARTIAL_CACHE_ALIAS_PREFIX = "_ENTITY_"

# Aliases added to every selection set so entities can be located in results
ALIAS_ENTITYCACHE_ID = "__entityCacheId"
ALIAS_ENTITYCACHE_TYPENAME = "__entityCacheTypeName"

COORDINATE_ROOTS: dict[OperationType, str] = {
    OperationType.QUERY: "Query",
    OperationType.MUTATION: "Mutation",
    OperationType.SUBSCRIPTION: "Subscription",
}

QUERY_ROOT = COORDINATE_ROOTS[OperationType.QUERY]

# Stand-in id for entities without one (singletons such as a dashboard)
ROOT_ENTITY_ID = '"{\\"__root\\": true}"'

DIRECTIVE_NAME_IDFIELD = "idField"
DIRECTIVE_NAME_CACHERESOLVER = "cacheResolver"
DIRECTIVE_NAME_CACHEENTITY = "cacheEntity"
