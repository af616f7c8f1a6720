"""Running partial queries and the link queries they lead to."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from inspect import isawaitable
from typing import Any

from graphql import DocumentNode, ExecutionResult, GraphQLError, GraphQLSchema, SelectionSetNode
from graphql import execute as graphql_execute

from partialql.core.entities.entity import CacheResolverMap, KnownEntitiesMap
from partialql.core.services.links import LinkCollector, build_link_query

logger = logging.getLogger(__name__)

RunQuery = Callable[[DocumentNode, str | None], ExecutionResult | Awaitable[ExecutionResult]]


@dataclass
class LayeredExecution:
    """Results of a partial query followed by its link queries, in order."""

    results: list[ExecutionResult] = field(default_factory=list)
    link_queries: list[DocumentNode] = field(default_factory=list)


async def run_query_once(
    run_query: RunQuery, document: DocumentNode, operation_name: str | None
) -> ExecutionResult:
    """Run a document, awaiting the result if needed.

    Raises:
        GraphQLError: If the runner streams results instead of returning one.
    """
    result = run_query(document, operation_name)
    if isawaitable(result):
        result = await result
    if not isinstance(result, ExecutionResult):
        raise GraphQLError("Async operations not supported")
    return result


def bind_execute(
    schema: GraphQLSchema,
    root_value: Any = None,
    context_value: Any = None,
    variable_values: dict[str, Any] | None = None,
    execute: Callable[..., Any] = graphql_execute,
    **kwargs: Any,
) -> RunQuery:
    """Bind execution arguments so only the document and operation vary.

    Args:
        schema: Schema to execute against.
        root_value: Root value passed to resolvers.
        context_value: Context passed to resolvers.
        variable_values: Variables of the request.
        execute: Execution function, graphql-core's ``execute`` by default.
        **kwargs: Further arguments for ``execute``.

    Returns:
        A runner for :func:`layered_cache_execute`.
    """

    def run_query(document: DocumentNode, operation_name: str | None) -> Any:
        return execute(
            schema,
            document,
            root_value=root_value,
            context_value=context_value,
            variable_values=variable_values,
            operation_name=operation_name,
            **kwargs,
        )

    return run_query


async def layered_cache_execute(
    run_query: RunQuery,
    resolvers: CacheResolverMap,
    link_selections: dict[str, SelectionSetNode],
    known_entities: KnownEntitiesMap,
    partial_query: DocumentNode | None,
    original_operation_name: str | None = None,
) -> LayeredExecution:
    """Run a partial query, then fetch the links it returns in rounds.

    Each round collects the link stubs of the previous result that are
    not known yet and fetches them through their cache resolvers. Rounds
    stop once a result holds no new links.

    Args:
        run_query: Executes a document.
        resolvers: Cache resolvers by typename.
        link_selections: Selection sets by cache-resolved coordinate.
        known_entities: Entities already present; updated as links are
            collected.
        partial_query: The query to run first, None when there is
            nothing to run.
        original_operation_name: Operation name of the request.

    Returns:
        Every result in execution order and the link queries run.
    """
    execution = LayeredExecution()
    if partial_query is None:
        return execution

    result = await run_query_once(run_query, partial_query, original_operation_name)
    execution.results.append(result)

    if not result.data or not link_selections:
        return execution

    collector = LinkCollector(link_selections, known_entities)

    while links := collector.collect(result.data):
        link_query = build_link_query(links, resolvers, original_operation_name)
        if link_query is None:
            break

        document, operation_name = link_query
        logger.debug(f"Running link query {operation_name} for {len(links)} link batch(es)")
        result = await run_query_once(run_query, document, operation_name)

        execution.link_queries.append(document)
        execution.results.append(result)

        if not result.data:
            break

    return execution
