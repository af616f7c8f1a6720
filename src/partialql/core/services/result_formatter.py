"""Attaching cache metadata to returned results."""

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from graphql import DocumentNode, ExecutionResult, print_ast

from partialql.core.entities.cache_metadata import EXTENSION_KEY, CacheMetadata
from partialql.core.entities.entity import EntityWithLocation
from partialql.utils.entities import get_known_entities, serialize_known_entities


class ResultFormatter:
    """Adds ``extensions.cache`` to results when metadata is enabled."""

    def __init__(self, ttl: timedelta, include_extension_metadata: bool = False) -> None:
        self._ttl = ttl
        self._include_extension_metadata = include_extension_metadata

    def format(
        self,
        result: ExecutionResult,
        cache_key: str,
        cached_result: dict[str, Any] | None = None,
        collected_entities: Sequence[EntityWithLocation] | None = None,
        query: DocumentNode | None = None,
        link_queries: Sequence[DocumentNode] = (),
    ) -> ExecutionResult:
        if not self._include_extension_metadata:
            return result

        metadata = CacheMetadata(
            cache_key=cache_key,
            expires=(datetime.now(timezone.utc) + self._ttl).isoformat(),
            hit=cached_result is not None,
            known_entities=serialize_known_entities(get_known_entities(collected_entities or ())),
            partial_query=print_ast(query) if query is not None else None,
            link_queries=[print_ast(link_query) for link_query in link_queries],
        )
        result.extensions = {**(result.extensions or {}), EXTENSION_KEY: metadata.to_dict()}
        return result
