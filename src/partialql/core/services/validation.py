"""Validation rules protecting the cache alias convention."""

from typing import Any

from graphql import FieldNode, GraphQLError, OperationDefinitionNode, ValidationRule

from partialql.core.constants import PARTIAL_CACHE_ALIAS_PREFIX


class NoAliasConventionConflictsRule(ValidationRule):
    """Reject root field aliases that look like cache resolutions.

    Such aliases would be merged into the response as re-fetched
    entities.
    """

    def enter_operation_definition(self, node: OperationDefinitionNode, *_args: Any) -> None:
        conflicts = [
            selection
            for selection in node.selection_set.selections
            if isinstance(selection, FieldNode)
            and selection.alias is not None
            and selection.alias.value.startswith(PARTIAL_CACHE_ALIAS_PREFIX)
        ]
        if conflicts:
            self.report_error(
                GraphQLError(
                    f"Root field aliases can't start with {PARTIAL_CACHE_ALIAS_PREFIX}",
                    conflicts,
                )
            )
