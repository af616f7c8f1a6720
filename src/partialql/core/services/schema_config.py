"""Reading partial cache configuration from schema directives.

``@cacheResolver`` marks root query fields able to fetch an entity by
id, and ``@cacheEntity(ttl:)`` shortens the time responses stay linked
to entities of a type.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from graphql import (
    DirectiveNode,
    GraphQLField,
    GraphQLInt,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLType,
    get_named_type,
    is_list_type,
    is_non_null_type,
    value_from_ast_untyped,
)

from partialql.core.constants import DIRECTIVE_NAME_CACHEENTITY, DIRECTIVE_NAME_CACHERESOLVER
from partialql.core.entities.entity import CacheResolver, CacheResolverMap

logger = logging.getLogger(__name__)

# Directive definitions to add to schemas and client documents
CACHE_DIRECTIVES_SDL = '''
"""Marks a root query field as able to fetch its type by id."""
directive @cacheResolver(
  """Argument carrying the id. Defaults to the only argument."""
  keyArg: String
) on FIELD_DEFINITION

"""Partial cache settings of an entity type."""
directive @cacheEntity(
  """Seconds responses stay linked to entities of this type."""
  ttl: Int
) on OBJECT

"""Marks the field identifying an entity in a client document."""
directive @idField on FIELD
'''


@dataclass
class SchemaConfig:
    """Partial cache configuration read from a schema."""

    schema: GraphQLSchema
    cache_resolvers: CacheResolverMap = field(default_factory=dict)
    entity_ttls: dict[str, timedelta] = field(default_factory=dict)
    id_field_by_typename: dict[str, str] = field(default_factory=dict)


def _is_batch_type(type_: GraphQLType) -> bool:
    while is_non_null_type(type_):
        type_ = type_.of_type  # type: ignore[attr-defined]
    return is_list_type(type_)


class SchemaConfigParser:
    """Parser extracting cache resolvers, entity TTLs and id fields."""

    def __init__(self, id_fields: tuple[str, ...] = ("id",)) -> None:
        """Initialize the parser.

        Args:
            id_fields: Field names tried in order as a type's id field.
        """
        self._id_fields = id_fields

    def parse_schema(self, schema: GraphQLSchema) -> SchemaConfig:
        """Parse a GraphQL schema.

        Args:
            schema: The graphql-core schema, built from SDL carrying the
                cache directives.

        Returns:
            The extracted configuration.
        """
        config = SchemaConfig(schema=schema)

        for type_name, type_def in schema.type_map.items():
            # Skip built-in types
            if type_name.startswith("__"):
                continue
            if not isinstance(type_def, (GraphQLObjectType, GraphQLInterfaceType)):
                continue

            id_field = next((name for name in self._id_fields if name in type_def.fields), None)
            if id_field is not None:
                config.id_field_by_typename[type_name] = id_field

            if isinstance(type_def, GraphQLObjectType):
                ttl = self._parse_entity_ttl(type_def)
                if ttl is not None:
                    config.entity_ttls[type_name] = ttl

        query_type = schema.query_type
        if query_type is not None:
            for field_name, field_def in query_type.fields.items():
                resolved = self._parse_cache_resolver(field_name, field_def)
                if resolved is not None:
                    typename, resolver = resolved
                    config.cache_resolvers[typename] = resolver

        return config

    def _parse_entity_ttl(self, type_def: GraphQLNamedType) -> timedelta | None:
        directive = self._extract_directive_from_node(type_def, DIRECTIVE_NAME_CACHEENTITY)
        if directive is None:
            return None
        ttl = self._get_arguments(directive).get("ttl")
        if not isinstance(ttl, int):
            return None
        return timedelta(seconds=ttl)

    def _parse_cache_resolver(
        self, field_name: str, field_def: GraphQLField
    ) -> tuple[str, CacheResolver] | None:
        directive = self._extract_directive_from_node(field_def, DIRECTIVE_NAME_CACHERESOLVER)
        if directive is None or not field_def.args:
            return None

        key_arg = self._get_arguments(directive).get("keyArg")
        if key_arg not in field_def.args:
            if len(field_def.args) != 1:
                logger.warning(f"Cannot tell the id argument of cache resolver {field_name}")
                return None
            key_arg = next(iter(field_def.args))

        named_type = get_named_type(field_def.type)
        if not isinstance(named_type, GraphQLObjectType):
            return None

        arg_type = field_def.args[key_arg].type
        return named_type.name, CacheResolver(
            root_field=field_name,
            id_arg=key_arg,
            type="int" if get_named_type(arg_type) is GraphQLInt else "string",
            batch=_is_batch_type(field_def.type) and _is_batch_type(arg_type),
        )

    def _extract_directive_from_node(self, node: Any, name: str) -> DirectiveNode | None:
        ast_node = getattr(node, "ast_node", None)
        if ast_node is None:
            return None

        for directive in ast_node.directives or ():
            if directive.name.value == name:
                return directive

        return None

    def _get_arguments(self, directive: DirectiveNode) -> dict[str, Any]:
        return {
            argument.name.value: value_from_ast_untyped(argument.value)
            for argument in directive.arguments or ()
        }


def get_cache_directives_sdl() -> str:
    """Get the SDL definitions of the cache directives.

    Add this to your schema to enable partial cache directives.
    """
    return CACHE_DIRECTIVES_SDL
