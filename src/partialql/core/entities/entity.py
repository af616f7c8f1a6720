"""Entity, path and link value objects."""

from dataclasses import dataclass, field, replace
from typing import Any, Literal

from graphql import DocumentNode, SelectionSetNode

from partialql.core.constants import ALIAS_ENTITYCACHE_ID, ALIAS_ENTITYCACHE_TYPENAME

Id = str | int

KnownEntitiesMap = dict[str, set[Id]]

_STUB_KEYS = frozenset((ALIAS_ENTITYCACHE_ID, ALIAS_ENTITYCACHE_TYPENAME))


@dataclass(frozen=True)
class EntityRecord:
    """An entity identified by its typename and optional id.

    Entities without an id are singletons (one per typename).
    """

    typename: str
    id: Id | None = None


@dataclass(frozen=True)
class PathPart:
    """One step of a location inside response data.

    ``index`` is set when the step goes through a list, ``id`` when the
    list member is an entity with a known id.
    """

    field: str
    index: int | None = None
    id: Id | None = None

    @property
    def is_list(self) -> bool:
        return self.index is not None

    def with_index(self, index: int) -> "PathPart":
        return replace(self, index=index)

    def with_id(self, id: Id) -> "PathPart":
        return replace(self, id=id)


DataPath = tuple[PathPart, ...]


@dataclass(frozen=True)
class EntityWithLocation:
    """An entity observed at a specific location of a result."""

    entity: EntityRecord
    path: DataPath


@dataclass(frozen=True)
class EntityCacheResult(EntityWithLocation):
    """A located entity together with its invalidation status."""

    invalidated: bool = False


@dataclass(frozen=True)
class CacheResolver:
    """A root query field able to re-fetch an entity by id.

    Attributes:
        root_field: Name of the field on the query root.
        id_arg: Name of the argument carrying the id(s).
        type: Whether ids are sent as string or int literals.
        batch: Whether the field accepts a list of ids at once.
    """

    root_field: str
    id_arg: str
    type: Literal["string", "int"] = "string"
    batch: bool = False


CacheResolverMap = dict[str, CacheResolver]


@dataclass(frozen=True)
class LinkStub:
    """Placeholder left in a response where an entity must be fetched."""

    typename: str
    id: Any

    @classmethod
    def from_data(cls, data: Any) -> "LinkStub | None":
        """Recognize a link stub in response data.

        Args:
            data: Any value from a response.

        Returns:
            The stub if ``data`` is an object holding exactly the two
            entity alias keys, otherwise None.
        """
        if not isinstance(data, dict) or data.keys() != _STUB_KEYS:
            return None
        return cls(
            typename=data[ALIAS_ENTITYCACHE_TYPENAME],
            id=data[ALIAS_ENTITYCACHE_ID],
        )

    @property
    def has_valid_id(self) -> bool:
        return isinstance(self.id, (str, int)) and not isinstance(self.id, bool)


def is_cache_resolved_entity(value: Any) -> bool:
    """Check if a value is an object carrying both entity alias keys."""
    return (
        isinstance(value, dict)
        and ALIAS_ENTITYCACHE_ID in value
        and ALIAS_ENTITYCACHE_TYPENAME in value
    )


@dataclass
class TypeLinkWithCoordinates:
    """Ids of one typename discovered as links at one coordinate."""

    typename: str
    coordinates: str
    selection_set: SelectionSetNode
    ids: list[Id] = field(default_factory=list)


@dataclass
class PartialExecutionOpts:
    """What to execute for a request and what to merge it into.

    A ``query`` of None means nothing needs to run: the cached result
    is served as is.
    """

    query: DocumentNode | None
    known_entities: KnownEntitiesMap = field(default_factory=dict)
    link_selections: dict[str, SelectionSetNode] = field(default_factory=dict)
    cached_result: dict[str, Any] | None = None

    @property
    def is_cache_miss(self) -> bool:
        return self.cached_result is None
