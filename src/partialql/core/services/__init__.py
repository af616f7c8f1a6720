"""Domain services for partialql."""

from partialql.core.services.cache_service import PartialCacheService
from partialql.core.services.document_parser import prepare_client_document, prepare_document
from partialql.core.services.entity_tree import EntityTree, EntityTreeNode, EntityTreeView
from partialql.core.services.executor import bind_execute, layered_cache_execute
from partialql.core.services.partial_query import PartialRecacheQuery, get_partial_recache_query
from partialql.core.services.result_processor import ResultProcessor
from partialql.core.services.schema_config import (
    CACHE_DIRECTIVES_SDL,
    SchemaConfig,
    SchemaConfigParser,
    get_cache_directives_sdl,
)
from partialql.core.services.validation import NoAliasConventionConflictsRule

__all__ = [
    "CACHE_DIRECTIVES_SDL",
    "EntityTree",
    "EntityTreeNode",
    "EntityTreeView",
    "NoAliasConventionConflictsRule",
    "PartialCacheService",
    "PartialRecacheQuery",
    "ResultProcessor",
    "SchemaConfig",
    "SchemaConfigParser",
    "bind_execute",
    "get_cache_directives_sdl",
    "get_partial_recache_query",
    "layered_cache_execute",
    "prepare_client_document",
    "prepare_document",
]
