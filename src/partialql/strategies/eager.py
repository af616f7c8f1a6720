"""Eager invalidation: re-plan stored responses when entities change."""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import timedelta
from typing import Any

from graphql import DocumentNode, GraphQLSyntaxError, SelectionSetNode, parse, print_ast

from partialql.core.constants import ROOT_ENTITY_ID
from partialql.core.entities.cache_metadata import CacheMetadata
from partialql.core.entities.entity import (
    CacheResolverMap,
    EntityCacheResult,
    EntityRecord,
    EntityWithLocation,
    PartialExecutionOpts,
)
from partialql.core.interfaces.cache_store import ICacheStore
from partialql.core.interfaces.key_builder import IKeyBuilder
from partialql.core.interfaces.serializer import ISerializer
from partialql.core.services.entity_tree import EntityTree
from partialql.core.services.partial_query import get_partial_recache_query
from partialql.infrastructure.key_builders.default import DefaultKeyBuilder
from partialql.infrastructure.serializers.json import JsonSerializer
from partialql.strategies.utils import (
    create_cache_set_member_getter,
    get_and_parse_cached_response,
    get_entity_keys_to_invalidate,
)
from partialql.utils.entities import (
    CollectEntityWithLocation,
    collect_entity_records,
    collect_entity_with_location,
    deserialize_known_entities,
    get_known_entities,
    serialize_known_entities,
)

logger = logging.getLogger(__name__)


def _parse_selection_set(source: str) -> SelectionSetNode:
    # a bare selection set parses as an anonymous query
    operation = parse(source, no_location=True).definitions[0]
    return operation.selection_set


class EagerInvalidationStrategy:
    """Computes partial queries when entities are invalidated.

    Stored responses keep their original document and known entities in
    ``extensions.cache``. Invalidating an entity rebuilds the entity tree
    of every response containing it and stores the resulting partial
    query and link selections next to the response, so reads only have
    to parse them.
    """

    def __init__(
        self,
        store: ICacheStore,
        resolvers: CacheResolverMap | None = None,
        ttl: timedelta = timedelta(minutes=5),
        serializer: JsonSerializer | ISerializer | None = None,
        key_builder: IKeyBuilder | None = None,
        collect_entity: CollectEntityWithLocation = collect_entity_with_location,
    ) -> None:
        """Initialize the strategy.

        Args:
            store: Where responses and membership sets live.
            resolvers: Cache resolvers by typename.
            ttl: Lifetime given to responses rewritten on invalidation.
            serializer: Serializer for stored responses.
            key_builder: Builds and parses entity keys.
            collect_entity: Reads entities from response objects.
        """
        self._store = store
        self._resolvers = resolvers or {}
        self._ttl = ttl
        self._serializer = serializer or JsonSerializer()
        self._key_builder = key_builder or DefaultKeyBuilder()
        self._collect_entity = collect_entity

    async def get_partial_execution_opts(
        self,
        cache_key: str,
        document: DocumentNode,
        resolvers: CacheResolverMap | None = None,
    ) -> PartialExecutionOpts:
        miss = PartialExecutionOpts(query=document)

        result = await get_and_parse_cached_response(self._store, cache_key, self._serializer)
        if result is None:
            return miss

        metadata = CacheMetadata.from_result(result)
        if metadata is None:
            logger.warning(
                "No cache extension found on cached document, falling back to standard execution"
            )
            return miss

        if metadata.partial_query is None:
            return miss

        try:
            partial_query = parse(metadata.partial_query, no_location=True)
            link_selections = {
                coordinates: _parse_selection_set(selection_set)
                for coordinates, selection_set in (metadata.link_selections or {}).items()
            }
        except GraphQLSyntaxError as e:
            logger.error(f"Unable to parse stored partial query for {cache_key}: {e.message}")
            return miss

        return PartialExecutionOpts(
            query=partial_query,
            known_entities=deserialize_known_entities(metadata.known_entities or {}),
            link_selections=link_selections,
            cached_result=result,
        )

    async def invalidate_entities(self, entities: Iterable[EntityRecord]) -> None:
        """Re-plan every stored response containing the given entities.

        Responses are re-planned concurrently; a failure on one is logged
        and does not affect the others.
        """
        keys = await get_entity_keys_to_invalidate(
            self._store, self._key_builder.build_entity_key, entities
        )
        get_set_members = create_cache_set_member_getter(self._store)
        members_by_key = await asyncio.gather(*(get_set_members(key) for key in keys))

        entity_keys_by_operation: dict[str, dict[str, None]] = {}
        for entity_key, cache_keys in zip(keys, members_by_key):
            for cache_key in cache_keys:
                entity_keys_by_operation.setdefault(cache_key, {})[entity_key] = None

        await asyncio.gather(
            *(
                self._invalidate_cache_result(cache_key, list(entity_keys))
                for cache_key, entity_keys in entity_keys_by_operation.items()
            )
        )

    async def _invalidate_cache_result(self, cache_key: str, entity_keys: list[str]) -> None:
        try:
            await self._replan(cache_key, entity_keys)
        except Exception:
            logger.exception(f"Failed to invalidate cached result {cache_key}, skipping")

    async def _replan(self, cache_key: str, entity_keys: list[str]) -> None:
        result = await get_and_parse_cached_response(self._store, cache_key, self._serializer)
        if result is None:
            return

        metadata = CacheMetadata.from_result(result)
        if metadata is None:
            logger.error("Cache extension not available on invalidated query, skipping")
            return

        invalidated_ids: dict[str, set[str]] = {}
        for key in entity_keys:
            entity = self._key_builder.parse_entity_key(key)
            id = ROOT_ENTITY_ID if entity.id is None else str(entity.id)
            invalidated_ids.setdefault(entity.typename, set()).add(id)

        if not metadata.original_document:
            logger.error(
                "Can't eagerly invalidate operation where original document "
                "is not saved as part of the response extension"
            )
            return

        try:
            original_document = parse(metadata.original_document)
        except GraphQLSyntaxError:
            logger.error(f"Unable to parse original document for operation {cache_key}, not invalidating")
            return

        tree = EntityTree()
        for record in collect_entity_records(result.get("data"), self._collect_entity):
            id = ROOT_ENTITY_ID if record.entity.id is None else str(record.entity.id)
            tree.build_node(
                EntityCacheResult(
                    entity=record.entity,
                    path=record.path,
                    invalidated=id in invalidated_ids.get(record.entity.typename, ()),
                ),
                self._resolvers,
            )

        partial = get_partial_recache_query(original_document, tree)
        if partial is not None:
            metadata.partial_query = print_ast(partial.query)
            metadata.link_selections = {
                coordinates: print_ast(selection_set)
                for coordinates, selection_set in partial.link_selections.items()
            }
            metadata.attach_to(result)

        await self._store.set(cache_key, self._serializer.serialize(result), self._ttl)
        logger.debug(f"Re-planned cached result {cache_key}")

    async def store_execution_result(
        self,
        cache_key: str,
        execution_result: dict[str, Any],
        collected_entities: Sequence[EntityWithLocation],
        ttl: timedelta,
        entity_ttls: dict[str, timedelta],
        original_document: DocumentNode,
    ) -> None:
        metadata = CacheMetadata.from_result(execution_result) or CacheMetadata()
        metadata.original_document = print_ast(original_document)
        metadata.known_entities = serialize_known_entities(get_known_entities(collected_entities))
        metadata.partial_query = None
        metadata.link_selections = None
        metadata.attach_to(execution_result)

        member_ttls: dict[str, timedelta] = {}
        for record in collected_entities:
            entity_ttl = min(entity_ttls.get(record.entity.typename, ttl), ttl)
            # the response must not outlive a membership pointing at it
            ttl = min(ttl, entity_ttl)
            entity_key = self._key_builder.build_entity_key(record.entity)
            member_ttls[entity_key] = min(member_ttls.get(entity_key, entity_ttl), entity_ttl)

        pipe = self._store.get_pipe()
        for entity_key, member_ttl in member_ttls.items():
            await pipe.add_members_to_set(entity_key, [(cache_key, member_ttl)])
        await pipe.set(cache_key, self._serializer.serialize(execution_result), ttl)
        await pipe.execute()
