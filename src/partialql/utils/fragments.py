"""Fragment inlining."""

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    InlineFragmentNode,
    OperationDefinitionNode,
    SelectionNode,
    SelectionSetNode,
)

from partialql.utils.ast import replace_node


def inline_fragments(document: DocumentNode) -> DocumentNode:
    """Replace fragment spreads with equivalent inline fragments.

    Fragment definitions are dropped from the returned document, which
    is built from new nodes; ``document`` is left untouched.

    Raises:
        GraphQLError: If a spread names a fragment that is not defined,
            or fragments spread each other in a cycle.
    """
    fragments = {
        definition.name.value: definition
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }

    def flatten_selection_set(
        selection_set: SelectionSetNode, visiting: tuple[str, ...]
    ) -> SelectionSetNode:
        return replace_node(
            selection_set,
            selections=tuple(
                flatten_selection(selection, visiting) for selection in selection_set.selections
            ),
        )

    def flatten_selection(selection: SelectionNode, visiting: tuple[str, ...]) -> SelectionNode:
        if isinstance(selection, FieldNode):
            if selection.selection_set is None:
                return selection
            return replace_node(
                selection, selection_set=flatten_selection_set(selection.selection_set, visiting)
            )

        if isinstance(selection, InlineFragmentNode):
            return replace_node(
                selection, selection_set=flatten_selection_set(selection.selection_set, visiting)
            )

        if isinstance(selection, FragmentSpreadNode):
            name = selection.name.value
            definition = fragments.get(name)
            if definition is None:
                raise GraphQLError(f"Fragment definition does not exist: {name}", selection)
            if name in visiting:
                raise GraphQLError(f"Cannot spread fragment {name} within itself", selection)
            return InlineFragmentNode(
                type_condition=definition.type_condition,
                directives=selection.directives or (),
                selection_set=flatten_selection_set(definition.selection_set, (*visiting, name)),
            )

        return selection

    definitions = []
    for definition in document.definitions:
        if isinstance(definition, FragmentDefinitionNode):
            continue
        if isinstance(definition, OperationDefinitionNode):
            definitions.append(
                replace_node(
                    definition,
                    selection_set=flatten_selection_set(definition.selection_set, ()),
                )
            )
        else:
            definitions.append(definition)

    return DocumentNode(definitions=tuple(definitions))
