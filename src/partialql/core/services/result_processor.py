"""Merging executed results into cached data and storing the outcome."""

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Protocol

from graphql import DocumentNode, ExecutionResult, GraphQLError

from partialql.core.entities.entity import EntityWithLocation
from partialql.core.services.alias import is_cache_alias_name, parse_cache_resolver_alias
from partialql.core.services.links import merge_link
from partialql.utils.entities import (
    CollectEntityWithLocation,
    collect_entity_records,
    collect_entity_with_location,
    strip_cache_aliases,
)
from partialql.utils.merge import index_wise_deep_merge

logger = logging.getLogger(__name__)

ShouldCacheResult = Callable[[str, ExecutionResult], bool]


class StoreExecutionResult(Protocol):
    def __call__(
        self,
        cache_key: str,
        execution_result: dict[str, Any],
        collected_entities: Sequence[EntityWithLocation],
        ttl: timedelta,
        entity_ttls: dict[str, timedelta],
        original_document: DocumentNode,
    ) -> Awaitable[None]: ...


def default_should_cache_result(cache_key: str, result: ExecutionResult) -> bool:
    """Cache only results without errors."""
    if result.errors:
        logger.warning(f"Failed to cache {cache_key} due to errors")
        return False
    return True


def resolve_next_data(data: dict[str, Any], next_data: dict[str, Any]) -> dict[str, Any]:
    """Merge one executed result's data into ``data``.

    Cache resolution fields are merged into the entities found at the
    coordinate their alias encodes; everything else is deep merged.
    """
    plain = {key: value for key, value in next_data.items() if not is_cache_alias_name(key)}
    index_wise_deep_merge(data, plain)

    for key, value in next_data.items():
        if is_cache_alias_name(key):
            merge_link(data, parse_cache_resolver_alias(key), value)

    return data


@dataclass
class ProcessedResult:
    """A merged result and the entities collected from it, if it was cached."""

    result: ExecutionResult
    collected_entities: list[EntityWithLocation] | None = None


@dataclass
class ResultProcessor:
    """Merges results into cached data and hands the outcome to the store.

    Storing is best effort: failures are logged and the merged result is
    returned regardless. Unless ``await_write_before_response`` is set,
    the write runs in the background.
    """

    store_execution_result: StoreExecutionResult
    ttl: timedelta
    entity_ttls: dict[str, timedelta] = field(default_factory=dict)
    collect_entity: CollectEntityWithLocation = collect_entity_with_location
    should_cache_result: ShouldCacheResult = default_should_cache_result
    await_write_before_response: bool = False
    _pending: set[asyncio.Task[None]] = field(default_factory=set, init=False, repr=False)

    async def process(
        self,
        cache_key: str,
        next_results: Sequence[ExecutionResult],
        original_document: DocumentNode,
        cached_result: dict[str, Any] | None = None,
    ) -> ProcessedResult:
        """Merge, store and clean up a request's results.

        Args:
            cache_key: Key of the request's response.
            next_results: Results executed for the request, in order.
            original_document: The request's document.
            cached_result: Stored response the results complete, if any.

        Returns:
            The merged result, stripped of entity alias keys.
        """
        data: dict[str, Any] = copy.deepcopy((cached_result or {}).get("data") or {})
        errors: list[GraphQLError] = []
        extensions: dict[str, Any] | None = None

        for next_result in next_results:
            if next_result.data:
                data = resolve_next_data(data, next_result.data)
            if next_result.errors:
                errors.extend(next_result.errors)
            if extensions is None:
                extensions = next_result.extensions

        result = ExecutionResult(data=data, errors=errors or None, extensions=extensions)
        collected: list[EntityWithLocation] | None = None

        if self.should_cache_result(cache_key, result):
            collected = collect_entity_records(data, self.collect_entity)
            payload: dict[str, Any] = {"data": copy.deepcopy(data)}
            if errors:
                payload["errors"] = [error.formatted for error in errors]
            if extensions:
                payload["extensions"] = copy.deepcopy(extensions)

            write = self._store(cache_key, payload, collected, original_document)
            if self.await_write_before_response:
                await write
            else:
                task = asyncio.create_task(write)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

        strip_cache_aliases(result.data)
        return ProcessedResult(result=result, collected_entities=collected)

    async def wait_for_pending_writes(self) -> None:
        """Wait for background writes started so far."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def _store(
        self,
        cache_key: str,
        payload: dict[str, Any],
        collected: list[EntityWithLocation],
        original_document: DocumentNode,
    ) -> None:
        try:
            await self.store_execution_result(
                cache_key=cache_key,
                execution_result=payload,
                collected_entities=collected,
                ttl=self.ttl,
                entity_ttls=self.entity_ttls,
                original_document=original_document,
            )
        except Exception:
            logger.exception(
                "Unexpected error occurred when storing execution result to cache. "
                "Result might not have been stored"
            )
