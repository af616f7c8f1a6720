"""Collecting entities from response data."""

from collections.abc import Callable, Iterable
from typing import Any

from partialql.core.constants import (
    ALIAS_ENTITYCACHE_ID,
    ALIAS_ENTITYCACHE_TYPENAME,
    QUERY_ROOT,
)
from partialql.core.entities.entity import (
    DataPath,
    EntityRecord,
    EntityWithLocation,
    KnownEntitiesMap,
    PathPart,
)

CollectEntityWithLocation = Callable[[dict[str, Any], DataPath], EntityWithLocation | None]


def collect_entity_with_location(
    data: dict[str, Any], path: DataPath
) -> EntityWithLocation | None:
    """Read the entity alias keys of an object.

    When the object is a list member, its id is folded into the last
    path part.

    Args:
        data: An object from response data.
        path: Where the object was found.

    Returns:
        The located entity, or None if the object carries no typename.
    """
    typename = data.get(ALIAS_ENTITYCACHE_TYPENAME)
    if not isinstance(typename, str):
        return None

    id = data.get(ALIAS_ENTITYCACHE_ID)
    last = path[-1]
    if last.is_list and id is not None:
        path = (*path[:-1], last.with_id(id))

    return EntityWithLocation(entity=EntityRecord(typename=typename, id=id), path=path)


def collect_entity_records(
    data: Any,
    collect: CollectEntityWithLocation = collect_entity_with_location,
    path: DataPath = (PathPart(field=QUERY_ROOT),),
) -> list[EntityWithLocation]:
    """Collect every entity in response data, depth first.

    Args:
        data: Response data, usually the ``data`` member of a result.
        collect: Reads the entity of a single object, if any.
        path: Location of ``data``; defaults to the query root.

    Returns:
        The located entities in document order.
    """
    records: list[EntityWithLocation] = []

    if isinstance(data, dict):
        entity = collect(data, path)
        if entity is not None:
            records.append(entity)
            # descendants see the list member's id
            path = entity.path
        for key, value in data.items():
            records.extend(collect_entity_records(value, collect, (*path, PathPart(field=key))))

    elif isinstance(data, list) and path:
        head, last = path[:-1], path[-1]
        for index, item in enumerate(data):
            records.extend(collect_entity_records(item, collect, (*head, last.with_index(index))))

    return records


def get_known_entities(collected: Iterable[EntityWithLocation]) -> KnownEntitiesMap:
    """Group the ids of collected entities by typename, skipping singletons."""
    known: KnownEntitiesMap = {}
    for record in collected:
        if record.entity.id is None:
            continue
        known.setdefault(record.entity.typename, set()).add(record.entity.id)
    return known


def serialize_known_entities(known: KnownEntitiesMap) -> dict[str, list[Any]]:
    return {typename: list(ids) for typename, ids in known.items()}


def deserialize_known_entities(data: dict[str, list[Any]]) -> KnownEntitiesMap:
    return {typename: set(ids) for typename, ids in data.items()}


def strip_cache_aliases(data: Any) -> Any:
    """Remove entity alias keys from response data in place."""
    if isinstance(data, dict):
        data.pop(ALIAS_ENTITYCACHE_TYPENAME, None)
        data.pop(ALIAS_ENTITYCACHE_ID, None)
        for value in data.values():
            strip_cache_aliases(value)
    elif isinstance(data, list):
        for item in data:
            strip_cache_aliases(item)
    return data
