"""Link stubs: creating them in documents, finding them in results."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from graphql import (
    DocumentNode,
    FieldNode,
    InlineFragmentNode,
    NameNode,
    OperationDefinitionNode,
    OperationType,
    SelectionNode,
    SelectionSetNode,
)

from partialql.core.constants import (
    ALIAS_ENTITYCACHE_ID,
    ALIAS_ENTITYCACHE_TYPENAME,
    QUERY_ROOT,
)
from partialql.core.entities.entity import (
    CacheResolverMap,
    KnownEntitiesMap,
    LinkStub,
    TypeLinkWithCoordinates,
    is_cache_resolved_entity,
)
from partialql.core.errors import CacheResolutionError
from partialql.core.services.alias import is_cache_alias_name, parse_cache_resolver_alias
from partialql.core.services.cache_resolution import CacheResolutionMapper
from partialql.utils.ast import replace_node
from partialql.utils.merge import index_wise_deep_merge

logger = logging.getLogger(__name__)

LINK_QUERY_SUFFIX = "_linkQuery"


def _shallow_fields(selection_set: SelectionSetNode) -> list[FieldNode]:
    fields: list[FieldNode] = []
    for selection in selection_set.selections:
        if isinstance(selection, FieldNode):
            fields.append(selection)
        elif isinstance(selection, InlineFragmentNode):
            fields.extend(_shallow_fields(selection.selection_set))
    return fields


def _alias_field(alias: str, name: str) -> FieldNode:
    return FieldNode(
        alias=NameNode(value=alias),
        name=NameNode(value=name),
        arguments=(),
        directives=(),
    )


def convert_field_node_to_link(field: FieldNode) -> FieldNode:
    """Replace a field's selections with the two entity alias selections.

    The id alias selects whatever field the original selection set
    aliased as the entity id, looking through inline fragments.

    Raises:
        CacheResolutionError: If the field selects no entity id.
    """
    if field.selection_set is None:
        raise CacheResolutionError(f"Field {field.name.value} has no selection set")

    id_selection = next(
        (
            selection
            for selection in _shallow_fields(field.selection_set)
            if selection.alias is not None and selection.alias.value == ALIAS_ENTITYCACHE_ID
        ),
        None,
    )
    if id_selection is None:
        raise CacheResolutionError(
            f"No id selection found for cache resolver entity at {field.name.value}"
        )

    return replace_node(
        field,
        selection_set=SelectionSetNode(
            selections=(
                _alias_field(ALIAS_ENTITYCACHE_TYPENAME, "__typename"),
                _alias_field(ALIAS_ENTITYCACHE_ID, id_selection.name.value),
            )
        ),
    )


class LinkCollector:
    """Finds link stubs in results that still need to be fetched.

    ``known_entities`` is shared across calls and updated with every id
    collected, so an entity is requested at most once. Ids are compared
    as strings: ids read back from keys are strings while stubs carry
    ids as they appear in the data.
    """

    def __init__(
        self,
        link_selections: dict[str, SelectionSetNode],
        known_entities: KnownEntitiesMap,
    ) -> None:
        self.link_selections = link_selections
        self.known_entities = known_entities
        self._known_ids: dict[str, set[str]] = {
            typename: {str(id) for id in ids} for typename, ids in known_entities.items()
        }

    def collect(self, data: Any) -> list[TypeLinkWithCoordinates]:
        """Collect link batches from result data.

        Args:
            data: The ``data`` member of a result.

        Returns:
            One batch per typename and coordinate, in discovery order.
        """
        links: dict[tuple[str, str], TypeLinkWithCoordinates] = {}
        self._collect(data, QUERY_ROOT, links)
        return list(links.values())

    def _collect(
        self,
        data: Any,
        coordinates: str,
        links: dict[tuple[str, str], TypeLinkWithCoordinates],
    ) -> None:
        if isinstance(data, list):
            for item in data:
                self._collect(item, coordinates, links)
            return

        if not isinstance(data, dict):
            return

        stub = LinkStub.from_data(data)
        if stub is not None:
            self._add(stub, coordinates, links)
            return

        for key, value in data.items():
            if is_cache_alias_name(key):
                next_coordinates = parse_cache_resolver_alias(key)
            else:
                next_coordinates = f"{coordinates}.{key}"
            self._collect(value, next_coordinates, links)

    def _add(
        self,
        stub: LinkStub,
        coordinates: str,
        links: dict[tuple[str, str], TypeLinkWithCoordinates],
    ) -> None:
        selection_set = self.link_selections.get(coordinates)
        if selection_set is None:
            logger.warning(f"No link selection found for link at {coordinates}")
            return

        if not stub.has_valid_id or not isinstance(stub.typename, str):
            return

        known_ids = self._known_ids.setdefault(stub.typename, set())
        if str(stub.id) in known_ids:
            return
        known_ids.add(str(stub.id))
        self.known_entities.setdefault(stub.typename, set()).add(stub.id)

        link = links.get((stub.typename, coordinates))
        if link is None:
            link = TypeLinkWithCoordinates(
                typename=stub.typename,
                coordinates=coordinates,
                selection_set=selection_set,
            )
            links[(stub.typename, coordinates)] = link
        link.ids.append(stub.id)


def get_link_operation_name(original_operation_name: str | None = None) -> str:
    """``MyQuery`` becomes ``MyQuery__linkQuery``; no name gives ``_linkQuery``."""
    prefix = f"{original_operation_name}_" if original_operation_name else ""
    return f"{prefix}{LINK_QUERY_SUFFIX}"


def build_link_query(
    links: list[TypeLinkWithCoordinates],
    resolvers: CacheResolverMap,
    original_operation_name: str | None = None,
) -> tuple[DocumentNode, str] | None:
    """Build a query fetching every linked entity through its resolver.

    Args:
        links: Link batches to fetch.
        resolvers: Cache resolvers by typename.
        original_operation_name: Name of the operation being answered.

    Returns:
        The link query and its operation name, or None if no batch has
        a resolver.
    """
    resolutions: list[SelectionNode] = []
    offsets: dict[str, int] = {}

    for link in links:
        resolver = resolvers.get(link.typename)
        if resolver is None:
            continue
        offset = offsets.get(link.coordinates, 0)
        resolutions.extend(
            CacheResolutionMapper(resolver)(link.ids, link.coordinates, link.selection_set, offset)
        )
        offsets[link.coordinates] = offset + len(link.ids)

    if not resolutions:
        return None

    operation_name = get_link_operation_name(original_operation_name)
    document = DocumentNode(
        definitions=(
            OperationDefinitionNode(
                operation=OperationType.QUERY,
                name=NameNode(value=operation_name),
                variable_definitions=(),
                directives=(),
                selection_set=SelectionSetNode(selections=tuple(resolutions)),
            ),
        )
    )
    return document, operation_name


def _inject(data: Any, path: list[str], injector: Callable[[Any], Any]) -> Any:
    if isinstance(data, list):
        return [_inject(item, path, injector) for item in data]
    if not path:
        return injector(data)
    if isinstance(data, dict) and path[0] in data:
        data[path[0]] = _inject(data[path[0]], path[1:], injector)
    return data


def _same_entity(a: dict[str, Any], b: dict[str, Any]) -> bool:
    return (
        a[ALIAS_ENTITYCACHE_TYPENAME] == b[ALIAS_ENTITYCACHE_TYPENAME]
        and a[ALIAS_ENTITYCACHE_ID] == b[ALIAS_ENTITYCACHE_ID]
    )


def _get_entity_link_merger(value: Any) -> Callable[[dict[str, Any]], Any] | None:
    if isinstance(value, list) and all(is_cache_resolved_entity(item) for item in value):
        def merge_from_list(data: dict[str, Any]) -> Any:
            source = next((entity for entity in value if _same_entity(data, entity)), None)
            if source is None:
                return data
            return index_wise_deep_merge(data, source)

        return merge_from_list

    if is_cache_resolved_entity(value):
        def merge_single(data: dict[str, Any]) -> Any:
            if _same_entity(data, value):
                return index_wise_deep_merge(data, value)
            return data

        return merge_single

    return None


def merge_link(data: dict[str, Any], coordinates: str, resolver_value: Any) -> None:
    """Merge the value of a cache resolution into result data in place.

    Every entity found at ``coordinates`` whose typename and id match an
    entity in ``resolver_value`` receives its data. Lists met on the way
    are walked member by member.

    Args:
        data: Result data being assembled.
        coordinates: Coordinate decoded from the resolution's alias.
        resolver_value: An entity or list of entities returned by the
            resolver field.
    """
    merge = _get_entity_link_merger(resolver_value)
    if merge is None:
        return

    path = coordinates.split(".")
    if path[0] == QUERY_ROOT:
        path = path[1:]

    def injector(value: Any) -> Any:
        if is_cache_resolved_entity(value):
            return merge(value)
        return value

    _inject(data, path, injector)
