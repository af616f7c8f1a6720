"""Coordinate tracking while walking a document."""

from graphql import FieldNode, FragmentDefinitionNode, Node, OperationDefinitionNode

from partialql.core.constants import COORDINATE_ROOTS


def response_name(field: FieldNode) -> str:
    """The key a field occupies in response data: its alias, else its name."""
    return field.alias.value if field.alias else field.name.value


class DocumentCoordinates:
    """Tracks the dot-separated coordinate of the node being visited.

    Entering an operation resets the coordinate to its root type name
    (``Query``, ``Mutation`` or ``Subscription``), entering a fragment
    definition resets it to the fragment name, and entering a field
    appends the field's response name.
    """

    def __init__(self) -> None:
        self._coordinates = ""
        self._path_cache: dict[str, tuple[str, ...]] = {}

    @property
    def coordinates(self) -> str:
        return self._coordinates

    @property
    def path(self) -> tuple[str, ...]:
        """The current coordinate split into its segments.

        Splits are cached per coordinate, so revisiting a coordinate
        returns the same tuple.
        """
        path = self._path_cache.get(self._coordinates)
        if path is None:
            path = tuple(self._coordinates.split(".")) if self._coordinates else ()
            self._path_cache[self._coordinates] = path
        return path

    def enter(self, node: Node) -> None:
        if isinstance(node, OperationDefinitionNode):
            self._coordinates = COORDINATE_ROOTS[node.operation]
        elif isinstance(node, FragmentDefinitionNode):
            self._coordinates = node.name.value
        elif isinstance(node, FieldNode):
            self._coordinates = f"{self._coordinates}.{response_name(node)}"

    def leave(self, node: Node) -> None:
        if isinstance(node, (OperationDefinitionNode, FragmentDefinitionNode)):
            self._coordinates = ""
        elif isinstance(node, FieldNode):
            self._coordinates = self._coordinates.rpartition(".")[0]
