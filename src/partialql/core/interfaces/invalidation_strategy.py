"""Invalidation strategy interface."""

from collections.abc import Iterable, Sequence
from datetime import timedelta
from typing import Any, Protocol

from graphql import DocumentNode

from partialql.core.entities.entity import (
    CacheResolverMap,
    EntityRecord,
    EntityWithLocation,
    PartialExecutionOpts,
)


class IInvalidationStrategy(Protocol):
    """Contract for keeping stored responses in step with entity changes.

    A strategy decides what must run to answer a request from a stored
    response, records which entities a stored response contains, and
    reacts to entities being invalidated.
    """

    async def get_partial_execution_opts(
        self,
        cache_key: str,
        document: DocumentNode,
        resolvers: CacheResolverMap,
    ) -> PartialExecutionOpts:
        """Plan the execution of a request.

        Args:
            cache_key: Key of the request's response.
            document: The request's document, with entity alias selections.
            resolvers: Cache resolvers by typename.

        Returns:
            What to run and the stored response to merge it into. Cache
            faults are logged and reported as a miss, never raised.
        """
        ...

    async def invalidate_entities(self, entities: Iterable[EntityRecord]) -> None:
        """Mark entities stale in every stored response containing them."""
        ...

    async def store_execution_result(
        self,
        cache_key: str,
        execution_result: dict[str, Any],
        collected_entities: Sequence[EntityWithLocation],
        ttl: timedelta,
        entity_ttls: dict[str, timedelta],
        original_document: DocumentNode,
    ) -> None:
        """Persist a response and the entities it contains.

        Args:
            cache_key: Key of the response.
            execution_result: Serializable response, entity aliases included.
            collected_entities: Entities found in the response.
            ttl: Lifetime of the response.
            entity_ttls: Membership lifetimes by typename.
            original_document: Document the response answers.
        """
        ...
