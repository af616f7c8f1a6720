"""Adding entity alias selections to documents."""

from typing import Any

from graphql import (
    DirectiveNode,
    DocumentNode,
    FieldNode,
    NameNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    TypeInfo,
    TypeInfoVisitor,
)
from graphql.language import REMOVE, SKIP, Visitor, visit

from partialql.core.constants import (
    ALIAS_ENTITYCACHE_ID,
    ALIAS_ENTITYCACHE_TYPENAME,
    DIRECTIVE_NAME_IDFIELD,
)
from partialql.core.services.schema_config import SchemaConfig


def get_cache_selections(id_field: str | None = None) -> list[FieldNode]:
    """The alias selections locating an entity: typename, then id if known."""
    selections = [
        FieldNode(
            alias=NameNode(value=ALIAS_ENTITYCACHE_TYPENAME),
            name=NameNode(value="__typename"),
            arguments=(),
            directives=(),
        )
    ]
    if id_field is not None:
        selections.append(
            FieldNode(
                alias=NameNode(value=ALIAS_ENTITYCACHE_ID),
                name=NameNode(value=id_field),
                arguments=(),
                directives=(),
            )
        )
    return selections


def _append_cache_selections(
    selection_set: SelectionSetNode, id_field: str | None
) -> SelectionSetNode | None:
    present = {
        selection.alias.value
        for selection in selection_set.selections
        if isinstance(selection, FieldNode) and selection.alias is not None
    }
    if ALIAS_ENTITYCACHE_TYPENAME in present:
        return None
    return SelectionSetNode(
        selections=(*selection_set.selections, *get_cache_selections(id_field)),
    )


class _SchemaCacheSelectionsVisitor(Visitor):
    def __init__(self, type_info: TypeInfo, config: SchemaConfig) -> None:
        super().__init__()
        self.type_info = type_info
        self.config = config

    def enter_operation_definition(self, node: OperationDefinitionNode, *_args: Any) -> Any:
        if node.operation != OperationType.QUERY:
            return SKIP
        return None

    def enter_selection_set(self, node: SelectionSetNode, *_args: Any) -> Any:
        parent_type = self.type_info.get_parent_type()
        id_field = (
            self.config.id_field_by_typename.get(parent_type.name) if parent_type else None
        )
        return _append_cache_selections(node, id_field)


class _ClientCacheSelectionsVisitor(Visitor):
    def enter_selection_set(self, node: SelectionSetNode, *_args: Any) -> Any:
        id_field = next(
            (
                selection.name.value
                for selection in node.selections
                if isinstance(selection, FieldNode)
                and any(
                    directive.name.value == DIRECTIVE_NAME_IDFIELD
                    for directive in selection.directives or ()
                )
            ),
            None,
        )
        return _append_cache_selections(node, id_field)

    def leave_directive(self, node: DirectiveNode, *_args: Any) -> Any:
        if node.name.value == DIRECTIVE_NAME_IDFIELD:
            return REMOVE
        return None


def prepare_document(document: DocumentNode, config: SchemaConfig) -> DocumentNode:
    """Add entity alias selections to every selection set of query operations.

    The id alias selects the id field the schema declares for the
    selection set's type, when it has one.

    Args:
        document: A parsed request document.
        config: Configuration read from the schema.

    Returns:
        A new document; ``document`` is left untouched.
    """
    type_info = TypeInfo(config.schema)
    return visit(document, TypeInfoVisitor(type_info, _SchemaCacheSelectionsVisitor(type_info, config)))


def prepare_client_document(document: DocumentNode) -> DocumentNode:
    """Add entity alias selections using ``@idField`` marks instead of a schema.

    The id alias selects the field carrying ``@idField`` in each
    selection set; the directive is stripped from the result.
    """
    return visit(document, _ClientCacheSelectionsVisitor())
