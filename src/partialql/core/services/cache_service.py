"""Partial cache service - main orchestrator for cached execution."""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from graphql import (
    DocumentNode,
    ExecutionResult,
    FieldNode,
    OperationDefinitionNode,
    OperationType,
    print_ast,
)

from partialql.core.entities.cache_config import PartialCacheConfig
from partialql.core.entities.entity import CacheResolverMap, EntityRecord, PartialExecutionOpts
from partialql.core.interfaces.invalidation_strategy import IInvalidationStrategy
from partialql.core.interfaces.key_builder import IKeyBuilder
from partialql.core.services.executor import RunQuery, layered_cache_execute, run_query_once
from partialql.core.services.result_formatter import ResultFormatter
from partialql.core.services.result_processor import (
    ResultProcessor,
    ShouldCacheResult,
    default_should_cache_result,
)
from partialql.infrastructure.key_builders.default import DefaultKeyBuilder
from partialql.utils.entities import CollectEntityWithLocation, collect_entity_with_location

logger = logging.getLogger(__name__)

SessionGetter = Callable[[Any], str | None]


def is_introspection_document(document: DocumentNode) -> bool:
    """Check if every operation of a document only queries ``__schema``."""
    return all(
        definition.operation == OperationType.QUERY
        and all(
            isinstance(selection, FieldNode) and selection.name.value == "__schema"
            for selection in definition.selection_set.selections
        )
        for definition in document.definitions
        if isinstance(definition, OperationDefinitionNode)
    )


class PartialCacheService:
    """Domain service answering requests from partially stale responses.

    Composes an invalidation strategy, cache resolvers, a key builder and
    the result processor. Documents given to :meth:`execute` must carry
    entity alias selections (see ``prepare_document``).

    Example:
        ```python
        store = InMemoryCacheStore()
        service = PartialCacheService(
            strategy=LazyInvalidationStrategy(store),
            cache_resolvers=schema_config.cache_resolvers,
        )
        result = await service.execute(
            bind_execute(schema), prepare_document(parse(query), schema_config)
        )
        ```
    """

    def __init__(
        self,
        strategy: IInvalidationStrategy,
        cache_resolvers: CacheResolverMap | None = None,
        config: PartialCacheConfig | None = None,
        key_builder: IKeyBuilder | None = None,
        session: SessionGetter | None = None,
        enabled: Callable[[Any], bool] | None = None,
        should_cache_result: ShouldCacheResult = default_should_cache_result,
        collect_entity: CollectEntityWithLocation = collect_entity_with_location,
    ) -> None:
        """Initialize the service.

        Args:
            strategy: The invalidation strategy.
            cache_resolvers: Cache resolvers by typename.
            config: Optional configuration. Uses defaults if not provided.
            key_builder: Builds response and entity keys.
            session: Reads a session id from the request context, for
                per-session responses.
            enabled: Decides per request context whether to use the cache.
            should_cache_result: Decides whether a result is stored.
            collect_entity: Reads entities from response objects.
        """
        self._strategy = strategy
        self._cache_resolvers = cache_resolvers or {}
        self._config = config or PartialCacheConfig()
        self._key_builder = key_builder or DefaultKeyBuilder(prefix=self._config.key_prefix)
        self._session = session
        self._enabled = enabled
        self._processor = ResultProcessor(
            store_execution_result=strategy.store_execution_result,
            ttl=self._config.ttl,
            entity_ttls=self._config.entity_ttls,
            collect_entity=collect_entity,
            should_cache_result=should_cache_result,
            await_write_before_response=self._config.await_write_before_response,
        )
        self._formatter = ResultFormatter(
            ttl=self._config.ttl,
            include_extension_metadata=self._config.include_extension_metadata,
        )

        # Statistics
        self._hits = 0
        self._misses = 0

    @property
    def config(self) -> PartialCacheConfig:
        """Get the cache configuration."""
        return self._config

    @property
    def processor(self) -> ResultProcessor:
        return self._processor

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with hits, misses, and total requests.
        """
        return {
            "hits": self._hits,
            "misses": self._misses,
            "total": self._hits + self._misses,
        }

    def build_cache_key(
        self,
        document: DocumentNode,
        operation_name: str | None = None,
        variables: dict[str, Any] | None = None,
        context: Any = None,
    ) -> str:
        session_id = self._session(context) if self._session is not None else None
        return self._key_builder.build(print_ast(document), operation_name, variables, session_id)

    async def execute(
        self,
        run_query: RunQuery,
        document: DocumentNode,
        operation_name: str | None = None,
        variables: dict[str, Any] | None = None,
        context: Any = None,
    ) -> ExecutionResult:
        """Answer a request, re-executing only what is stale.

        Args:
            run_query: Executes a document, see ``bind_execute``.
            document: The request's document, with entity alias selections.
            operation_name: Operation to run.
            variables: Variables of the request, part of the cache key.
            context: Request context, passed to the session and enabled
                callbacks.

        Returns:
            The result, merged with cached data and without alias keys.
        """
        if (
            not self._config.enabled
            or (self._enabled is not None and not self._enabled(context))
            or is_introspection_document(document)
        ):
            return await run_query_once(run_query, document, operation_name)

        cache_key = self.build_cache_key(document, operation_name, variables, context)

        try:
            opts = await self._strategy.get_partial_execution_opts(
                cache_key, document, self._cache_resolvers
            )
        except Exception:
            logger.exception(f"Failed to read cached result {cache_key}, executing uncached")
            opts = PartialExecutionOpts(query=document)
        if opts.is_cache_miss:
            self._misses += 1
            logger.debug(f"Cache miss for {cache_key}")
        else:
            self._hits += 1
            logger.debug(f"Cache hit for {cache_key}")

        execution = await layered_cache_execute(
            run_query=run_query,
            resolvers=self._cache_resolvers,
            link_selections=opts.link_selections,
            known_entities=opts.known_entities,
            partial_query=opts.query,
            original_operation_name=operation_name,
        )

        processed = await self._processor.process(
            cache_key=cache_key,
            next_results=execution.results,
            original_document=document,
            cached_result=opts.cached_result,
        )

        return self._formatter.format(
            processed.result,
            cache_key=cache_key,
            cached_result=opts.cached_result,
            collected_entities=processed.collected_entities,
            query=opts.query,
            link_queries=execution.link_queries,
        )

    async def invalidate_entities(self, entities: Iterable[EntityRecord | str]) -> None:
        """Invalidate entities given as records or entity keys (``Todo:1``)."""
        records = [
            self._key_builder.parse_entity_key(entity) if isinstance(entity, str) else entity
            for entity in entities
        ]
        logger.debug(f"Invalidating {len(records)} entit(y/ies)")
        await self._strategy.invalidate_entities(records)
