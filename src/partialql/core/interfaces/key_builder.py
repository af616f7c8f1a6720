"""Key builder interface."""

from typing import Any, Protocol

from partialql.core.entities.entity import DataPath, EntityRecord


class IKeyBuilder(Protocol):
    """Contract for the keys a partial cache stores things under."""

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
            A key identifying the response.
        """
        ...

    def build_entity_key(self, entity: EntityRecord) -> str:
        """Build the key of an entity's membership set."""
        ...

    def parse_entity_key(self, key: str) -> EntityRecord:
        """Read an entity back from its key."""
        ...

    def build_operation_key(self, cache_key: str) -> str:
        """Build the key of the set of entity references of a stored response."""
        ...

    def build_entity_reference_key(self, entity_key: str, path: DataPath) -> str:
        """Build a reference to an entity at a location in a response."""
        ...

    def parse_entity_reference_key(self, key: str) -> tuple[str, DataPath] | None:
        """Read an entity reference back into its entity key and data path.

        Returns:
            The entity key and path, or None if the key names no entity.

        Raises:
            DataPathError: If the path part is malformed.
        """
        ...
