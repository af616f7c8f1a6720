"""Rewriting a document into the smallest query re-fetching stale data."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    InlineFragmentNode,
    Node,
    OperationDefinitionNode,
    SelectionNode,
    SelectionSetNode,
)

from partialql.core.services.cache_resolution import CacheResolutionMapper
from partialql.core.services.coordinates import DocumentCoordinates, response_name
from partialql.core.services.entity_tree import EntityTree, EntityTreeView
from partialql.core.services.links import convert_field_node_to_link
from partialql.utils.ast import replace_node
from partialql.utils.fragments import inline_fragments

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=Node)


class RewriteAction(Enum):
    """What happens to a node after rewriting."""

    KEEP = "keep"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass(frozen=True)
class Rewrite(Generic[N]):
    """Outcome of rewriting one node."""

    action: RewriteAction
    node: N | None = None

    @classmethod
    def keep(cls) -> "Rewrite[N]":
        return cls(RewriteAction.KEEP)

    @classmethod
    def replace(cls, node: N) -> "Rewrite[N]":
        return cls(RewriteAction.REPLACE, node)

    @classmethod
    def delete(cls) -> "Rewrite[N]":
        return cls(RewriteAction.DELETE)

    def resolve(self, original: N) -> N | None:
        """The node to put in place of ``original``, None if it is removed."""
        if self.action is RewriteAction.KEEP:
            return original
        return self.node


@dataclass
class PartialRecacheQuery:
    """A partial query and the selections its link stubs stand for.

    ``link_selections`` maps each cache-resolved coordinate to the
    selection set its entities must be fetched with.
    """

    query: DocumentNode
    link_selections: dict[str, SelectionSetNode] = field(default_factory=dict)


def _with_selections(selection_set: SelectionSetNode, selections: list[SelectionNode]) -> SelectionSetNode:
    return replace_node(selection_set, selections=tuple(selections))


class PartialQueryRewriter:
    """Prunes a document against an entity tree.

    Fields whose coordinate carries cache resolvers are turned into link
    stubs, and the stale entities below them become aliased root field
    resolutions appended to the operation.
    """

    def __init__(self, entity_tree: EntityTree) -> None:
        self.view = EntityTreeView(entity_tree)
        self.coordinates = DocumentCoordinates()
        self.link_selections: dict[str, SelectionSetNode] = {}
        self._resolutions: list[FieldNode] = []

    def rewrite(self, document: DocumentNode) -> DocumentNode | None:
        """Rewrite a document.

        Returns:
            The rewritten document, or None if some operation would be
            left with nothing to execute.
        """
        definitions: list[Node] = []
        for definition in document.definitions:
            if isinstance(definition, OperationDefinitionNode):
                operation = self._rewrite_operation(definition)
                if operation is None:
                    return None
                definitions.append(operation)
            elif isinstance(definition, FragmentDefinitionNode):
                self.coordinates.enter(definition)
                try:
                    definitions.append(self._rewrite_fragment_definition(definition))
                finally:
                    self.coordinates.leave(definition)
            else:
                definitions.append(definition)

        return replace_node(document, definitions=tuple(definitions))

    def _rewrite_operation(self, operation: OperationDefinitionNode) -> OperationDefinitionNode | None:
        self._resolutions = []
        self.coordinates.enter(operation)
        try:
            selection_set = self._rewrite_selection_set(operation.selection_set)
        finally:
            self.coordinates.leave(operation)

        selections = [*selection_set.selections, *self._resolutions]
        if not selections:
            return None

        return replace_node(operation, selection_set=_with_selections(selection_set, selections))

    def _rewrite_fragment_definition(self, fragment: FragmentDefinitionNode) -> FragmentDefinitionNode:
        return replace_node(fragment, selection_set=self._rewrite_selection_set(fragment.selection_set))

    def _rewrite_selection_set(self, selection_set: SelectionSetNode) -> SelectionSetNode:
        selections: list[SelectionNode] = []
        for selection in selection_set.selections:
            node = self._rewrite_selection(selection).resolve(selection)
            if node is not None:
                selections.append(node)

        keep = self.view.selections_to_keep(self.coordinates.coordinates)
        if keep is not None:
            selections = [
                selection
                for selection in selections
                if not isinstance(selection, FieldNode) or response_name(selection) in keep
            ]
        return _with_selections(selection_set, selections)

    def _rewrite_selection(self, selection: SelectionNode) -> Rewrite:
        if isinstance(selection, FieldNode):
            self.coordinates.enter(selection)
            try:
                return self._rewrite_field(selection)
            finally:
                self.coordinates.leave(selection)

        if isinstance(selection, InlineFragmentNode):
            selection_set = self._rewrite_selection_set(selection.selection_set)
            if not selection_set.selections:
                return Rewrite.delete()
            return Rewrite.replace(replace_node(selection, selection_set=selection_set))

        return Rewrite.keep()

    def _rewrite_field(self, field: FieldNode) -> Rewrite[FieldNode]:
        if field.selection_set is None:
            return Rewrite.keep()

        selection_set = self._rewrite_selection_set(field.selection_set)
        # an empty selection set marks the field for removal
        if not selection_set.selections:
            return Rewrite.delete()

        rewritten = replace_node(field, selection_set=selection_set)

        coordinates = self.coordinates.coordinates
        node = self.view.node(coordinates)
        if node is None or not node.resolvers:
            return Rewrite.replace(rewritten)

        # entities kept only for a stale descendant stay a plain path
        if self.view.selections_to_keep(coordinates) is not None:
            return Rewrite.replace(rewritten)

        self.link_selections[coordinates] = selection_set

        offset = 0
        for typename, ids in node.required_entities.items():
            resolver = node.resolvers.get(typename)
            if resolver is None or not ids:
                continue
            self._resolutions.extend(
                CacheResolutionMapper(resolver)(ids, coordinates, selection_set, offset)
            )
            offset += len(ids)

        return Rewrite.replace(convert_field_node_to_link(rewritten))


def get_partial_recache_query(
    original_document: DocumentNode, entity_tree: EntityTree
) -> PartialRecacheQuery | None:
    """Compute the partial query re-fetching the stale parts of a response.

    Documents with more than one definition have their fragments inlined
    first so coordinates line up with response data.

    Args:
        original_document: The document the cached response answered,
            with entity alias selections.
        entity_tree: Tree built from the entities of the cached response.

    Returns:
        The partial query with its link selections, or None when there
        is nothing to re-fetch.

    Raises:
        CacheResolutionError: If a cache-resolved field selects no id.
    """
    if len(original_document.definitions) > 1:
        original_document = inline_fragments(original_document)

    rewriter = PartialQueryRewriter(entity_tree)
    query = rewriter.rewrite(original_document)
    if query is None:
        logger.debug("Nothing to re-fetch for document")
        return None

    return PartialRecacheQuery(query=query, link_selections=rewriter.link_selections)
