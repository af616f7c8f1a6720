"""Entity tree built from located, possibly invalidated, entities.

The tree mirrors the shape of a cached response. Each coordinate gets
one node recording whether its subtree must be kept whole (dirty), whether
it must stay in a partial query at all (required), and which entities
below it can be re-fetched through a cache resolver.
"""

from dataclasses import dataclass, field

from partialql.core.constants import QUERY_ROOT
from partialql.core.entities.entity import (
    CacheResolver,
    CacheResolverMap,
    EntityCacheResult,
    Id,
    PathPart,
)

ROOT_COORDINATES = "__root"


@dataclass
class EntityTreeNode:
    """State of one coordinate of the tree.

    ``selections`` maps child field names to child coordinates.
    ``required_entities`` holds, per typename, the ids to re-fetch
    through the node's cache resolvers, in discovery order.
    """

    coordinates: str
    is_dirty: bool = False
    is_invalidated: bool = False
    is_required: bool = False
    is_list: bool = False
    typename: str | None = None
    resolvers: dict[str, CacheResolver] = field(default_factory=dict)
    required_entities: dict[str, list[Id]] = field(default_factory=dict)
    selections: dict[str, str] = field(default_factory=dict)

    @property
    def is_entity(self) -> bool:
        return self.typename is not None

    def require(self, typename: str, id: Id | None = None) -> None:
        ids = self.required_entities.setdefault(typename, [])
        if id is not None and id not in ids:
            ids.append(id)


class EntityTree:
    """Arena of tree nodes indexed by coordinate."""

    def __init__(self) -> None:
        self._nodes: dict[str, EntityTreeNode] = {}
        self.root = self._add(EntityTreeNode(ROOT_COORDINATES))
        self.root.selections[QUERY_ROOT] = self._add(EntityTreeNode(QUERY_ROOT)).coordinates

    def __contains__(self, coordinates: str) -> bool:
        return coordinates in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, coordinates: str) -> EntityTreeNode | None:
        return self._nodes.get(coordinates)

    def children(self, node: EntityTreeNode) -> list[EntityTreeNode]:
        return [self._nodes[coordinates] for coordinates in node.selections.values()]

    def build_node(self, result: EntityCacheResult, resolvers: CacheResolverMap) -> None:
        """Fold one located entity into the tree.

        Args:
            result: The entity, its path starting at the query root, and
                whether it is invalidated.
            resolvers: Cache resolvers by typename.

        Raises:
            ValueError: If the entity's path is empty.
        """
        if not result.path:
            raise ValueError("Path is empty")
        self._build(self.root, result, resolvers, 0)

    @classmethod
    def from_results(
        cls, results: list[EntityCacheResult], resolvers: CacheResolverMap
    ) -> "EntityTree":
        tree = cls()
        for result in results:
            tree.build_node(result, resolvers)
        return tree

    def _add(self, node: EntityTreeNode) -> EntityTreeNode:
        self._nodes[node.coordinates] = node
        return node

    def _child(self, parent: EntityTreeNode, part: PathPart) -> EntityTreeNode:
        coordinates = parent.selections.get(part.field)
        if coordinates is not None:
            return self._nodes[coordinates]

        if parent.coordinates == ROOT_COORDINATES:
            coordinates = part.field
        else:
            coordinates = f"{parent.coordinates}.{part.field}"
        parent.selections[part.field] = coordinates

        node = self._nodes.get(coordinates)
        if node is None:
            node = self._add(
                EntityTreeNode(coordinates, is_dirty=parent.is_dirty, is_list=part.is_list)
            )
        return node

    def _build(
        self,
        parent: EntityTreeNode,
        result: EntityCacheResult,
        resolvers: CacheResolverMap,
        depth: int,
    ) -> None:
        part = result.path[depth]
        is_terminal = depth == len(result.path) - 1
        node = self._child(parent, part)
        typename = result.entity.typename

        if not is_terminal:
            self._build(node, result, resolvers, depth + 1)
        else:
            node.typename = typename
            resolver = resolvers.get(typename)
            if resolver is not None:
                node.resolvers[typename] = resolver
                # a resolver starts a new scope unless the entity itself is stale
                if not result.invalidated and not node.is_invalidated:
                    node.is_dirty = False
            if result.invalidated:
                node.is_invalidated = True
                node.is_required = True
                self._flag_branch_dirty(node)

        if not node.is_required:
            return

        # resolvers only re-fetch invalidated entities and list members
        if not node.resolvers or not (node.is_invalidated or node.is_list):
            parent.is_required = True

        if is_terminal:
            node.require(typename, result.entity.id if result.invalidated else None)
        elif part.is_list:
            node.require(node.typename or typename, part.id)

    def _flag_branch_dirty(self, node: EntityTreeNode) -> None:
        if node.resolvers and not node.is_invalidated:
            return
        node.is_dirty = True
        for child in self.children(node):
            if not child.is_dirty:
                self._flag_branch_dirty(child)


def get_selections_to_keep(node: EntityTreeNode) -> tuple[str, ...] | None:
    """Decide which child selections of a node survive in a partial query.

    Returns:
        None when the node's selection set must be kept whole, otherwise
        the response names of the fields to keep.
    """
    if node.is_dirty:
        return None

    if node.is_required:
        # lists may have gained or lost members
        if node.is_list:
            return None
        # a non-entity object may have changed without being invalidated
        if not node.is_entity:
            return None
        return tuple(node.selections)

    # kept whole so it can be reused as a link selection
    if node.resolvers:
        return None

    return ()


class EntityTreeView:
    """Read access to a tree with pruning decisions memoized per coordinate."""

    def __init__(self, tree: EntityTree) -> None:
        self.tree = tree
        self._keep: dict[str, tuple[str, ...] | None] = {}

    def node(self, coordinates: str) -> EntityTreeNode | None:
        return self.tree.get(coordinates)

    def selections_to_keep(self, coordinates: str) -> tuple[str, ...] | None:
        if coordinates not in self._keep:
            node = self.tree.get(coordinates)
            self._keep[coordinates] = None if node is None else get_selections_to_keep(node)
        return self._keep[coordinates]
