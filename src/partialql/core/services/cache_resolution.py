"""Mapping stale entity ids to root field selections."""

from collections.abc import Sequence

from graphql import (
    ArgumentNode,
    FieldNode,
    IntValueNode,
    ListValueNode,
    NameNode,
    SelectionSetNode,
    StringValueNode,
    ValueNode,
)

from partialql.core.entities.entity import CacheResolver, Id
from partialql.core.services.alias import get_cache_resolver_alias


class CacheResolutionMapper:
    """Builds the root field selections that re-fetch entities.

    A non-batch resolver yields one aliased field per id; a batch
    resolver yields a single field receiving every id as a list.

    Example:
        ```python
        mapper = CacheResolutionMapper(
            CacheResolver(root_field="getUpdateInfo", id_arg="id", type="int")
        )
        fields = mapper([2], "Query.dashboard.topActivity", selection_set)
        # _ENTITY_dashboard_topActivity_0: getUpdateInfo(id: 2) { ... }
        ```
    """

    def __init__(self, resolver: CacheResolver) -> None:
        self.resolver = resolver

    def __call__(
        self,
        ids: Sequence[Id],
        coordinates: str,
        selection_set: SelectionSetNode,
        offset: int = 0,
    ) -> list[FieldNode]:
        """Map ids found at ``coordinates`` to root field selections.

        Args:
            ids: Ids of the entities to fetch, in order.
            coordinates: Where the entities live in the original response.
            selection_set: Selections each fetched entity must satisfy.
            offset: First alias index to use, for coordinates shared by
                several typenames.

        Returns:
            The selections to append to a query operation.
        """
        if not ids:
            return []
        if self.resolver.batch:
            value = ListValueNode(values=tuple(self._value(id) for id in ids))
            return [self._field(get_cache_resolver_alias(coordinates), value, selection_set)]
        return [
            self._field(
                get_cache_resolver_alias(coordinates, offset + index),
                self._value(id),
                selection_set,
            )
            for index, id in enumerate(ids)
        ]

    def _value(self, id: Id) -> ValueNode:
        if self.resolver.type == "int":
            return IntValueNode(value=str(id))
        return StringValueNode(value=str(id))

    def _field(self, alias: str, value: ValueNode, selection_set: SelectionSetNode) -> FieldNode:
        return FieldNode(
            alias=NameNode(value=alias),
            name=NameNode(value=self.resolver.root_field),
            arguments=(ArgumentNode(name=NameNode(value=self.resolver.id_arg), value=value),),
            directives=(),
            selection_set=selection_set,
        )
