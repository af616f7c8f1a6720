"""Default key builder implementation."""

from typing import Any

from partialql.core.entities.entity import DataPath, EntityRecord
from partialql.core.errors import DataPathError
from partialql.utils.hashing import hash_parts, normalize_query, stable_json
from partialql.utils.paths import data_path_to_str, str_to_data_path


class DefaultKeyBuilder:
    """Default key builder.

    Response keys hash the normalized document, operation name, variables
    and session together. Entity keys are ``Typename`` or
    ``Typename:id``, and entity reference keys append a data path:
    ``Todo:1>Query.todos@0#1``.
    """

    def __init__(self, prefix: str = "partialql") -> None:
        """Initialize the key builder.

        Args:
            prefix: Prefix for response keys.
        """
        self._prefix = prefix

    def build(
        self,
        document: str,
        operation_name: str | None,
        variables: dict[str, Any] | None,
        session_id: str | None = None,
    ) -> str:
        """Build the response cache key of a request.

        Args:
            document: The printed document.
            operation_name: Name of the operation to run (may be None).
            variables: Variables passed to the operation.
            session_id: Identifies the caller when responses are per session.

        Returns:
            ``<prefix>:<sha256>``.
        """
        digest = hash_parts(
            normalize_query(document),
            operation_name or "",
            stable_json(variables or {}),
            session_id or "",
        )
        return f"{self._prefix}:{digest}"

    def build_entity_key(self, entity: EntityRecord) -> str:
        if entity.id is None or entity.id == "":
            return entity.typename
        return f"{entity.typename}:{entity.id}"

    def parse_entity_key(self, key: str) -> EntityRecord:
        typename, _, id = key.partition(":")
        return EntityRecord(typename=typename, id=id or None)

    def build_operation_key(self, cache_key: str) -> str:
        """Key of the set of entity references of a stored response."""
        return f"operation:{cache_key}"

    def build_entity_reference_key(self, entity_key: str, path: DataPath) -> str:
        return f"{entity_key}>{data_path_to_str(path)}"

    def parse_entity_reference_key(self, key: str) -> tuple[str, DataPath] | None:
        """Read an entity reference key.

        Returns:
            The entity key and data path, or None if the key names no entity.

        Raises:
            DataPathError: If the path part is malformed.
        """
        entity_key, separator, path = key.partition(">")
        if not entity_key:
            return None
        if not separator:
            raise DataPathError(f"Entity reference {key!r} has no path")
        return entity_key, str_to_data_path(path)
