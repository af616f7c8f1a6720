"""Lazy invalidation: detect stale entities when a response is read."""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import timedelta
from typing import Any

from graphql import DocumentNode

from partialql.core.entities.entity import (
    CacheResolverMap,
    DataPath,
    EntityCacheResult,
    EntityRecord,
    EntityWithLocation,
    KnownEntitiesMap,
    PartialExecutionOpts,
)
from partialql.core.errors import DataPathError
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

logger = logging.getLogger(__name__)


class LazyInvalidationStrategy:
    """Works out what is stale when a stored response is read.

    Each entity keeps a membership set of the responses containing it,
    and each response keeps the set of its entity references (entity key
    plus location). Invalidating an entity deletes its membership set,
    so a response that no longer appears in the set of one of its
    entities knows that entity is stale.
    """

    def __init__(
        self,
        store: ICacheStore,
        serializer: JsonSerializer | ISerializer | None = None,
        key_builder: IKeyBuilder | None = None,
    ) -> None:
        """Initialize the strategy.

        Args:
            store: Where responses and membership sets live.
            serializer: Serializer for stored responses.
            key_builder: Builds and parses entity, reference and
                operation keys.
        """
        self._store = store
        self._serializer = serializer or JsonSerializer()
        self._key_builder = key_builder or DefaultKeyBuilder()

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

        get_set_members = create_cache_set_member_getter(self._store)
        references = self._parse_references(
            await get_set_members(self._key_builder.build_operation_key(cache_key))
        )
        if not references:
            return miss

        operations_by_entity = await asyncio.gather(
            *(get_set_members(entity_key) for entity_key, _path in references)
        )

        tree = EntityTree()
        known_entities: KnownEntitiesMap = {}
        for (entity_key, path), operations in zip(references, operations_by_entity):
            entity = self._key_builder.parse_entity_key(entity_key)
            if entity.id is not None:
                known_entities.setdefault(entity.typename, set()).add(entity.id)
            tree.build_node(
                EntityCacheResult(
                    entity=entity,
                    path=path,
                    invalidated=cache_key not in operations,
                ),
                resolvers or {},
            )

        try:
            partial = get_partial_recache_query(document, tree)
        except Exception:
            logger.exception(
                "Unexpected error when handling getting partial query, "
                "falling back to uncached execution"
            )
            return miss

        return PartialExecutionOpts(
            query=partial.query if partial is not None else None,
            known_entities=known_entities,
            link_selections=partial.link_selections if partial is not None else {},
            cached_result=result,
        )

    def _parse_references(self, keys: Iterable[str]) -> list[tuple[str, DataPath]]:
        references = []
        for key in keys:
            try:
                reference = self._key_builder.parse_entity_reference_key(key)
            except DataPathError as e:
                logger.warning(f"Skipping malformed entity reference {key!r}: {e}")
                continue
            if reference is not None:
                references.append(reference)
        return references

    async def invalidate_entities(self, entities: Iterable[EntityRecord]) -> None:
        keys = await get_entity_keys_to_invalidate(
            self._store, self._key_builder.build_entity_key, entities
        )
        if keys:
            await self._store.clear(keys)

    async def store_execution_result(
        self,
        cache_key: str,
        execution_result: dict[str, Any],
        collected_entities: Sequence[EntityWithLocation],
        ttl: timedelta,
        entity_ttls: dict[str, timedelta],
        original_document: DocumentNode,
    ) -> None:
        operation_key = self._key_builder.build_operation_key(cache_key)
        pipe = self._store.get_pipe()
        references: list[tuple[str, timedelta]] = []

        for record in collected_entities:
            entity_key = self._key_builder.build_entity_key(record.entity)
            entity_ttl = entity_ttls.get(record.entity.typename, ttl)
            await pipe.add_members_to_set(entity_key, [(cache_key, entity_ttl)])
            references.append(
                (self._key_builder.build_entity_reference_key(entity_key, record.path), ttl)
            )

        await pipe.clear([operation_key])
        await pipe.add_members_to_set(operation_key, references)
        await pipe.set(cache_key, self._serializer.serialize(execution_result), ttl)
        await pipe.execute()
