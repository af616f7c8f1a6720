"""Deep merging of response data."""

import copy
from typing import Any

from partialql.core.constants import ALIAS_ENTITYCACHE_ID, ALIAS_ENTITYCACHE_TYPENAME
from partialql.core.entities.entity import is_cache_resolved_entity


def _is_entity_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        is_cache_resolved_entity(item) for item in value
    )


def _entity_identity(entity: dict[str, Any]) -> tuple[Any, str]:
    return entity[ALIAS_ENTITYCACHE_TYPENAME], str(entity[ALIAS_ENTITYCACHE_ID])


def _merge_entity_lists(
    target: list[dict[str, Any]], source: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    by_identity = {_entity_identity(entity): entity for entity in target}
    merged = []
    for entity in source:
        existing = by_identity.get(_entity_identity(entity))
        if existing is None:
            merged.append(entity)
        else:
            merged.append(index_wise_deep_merge(copy.deepcopy(existing), entity))
    return merged


def index_wise_deep_merge(target: Any, *sources: Any) -> Any:
    """Merge ``sources`` into ``target`` in place.

    Objects are merged key by key. Any other value, lists included,
    replaces what was there, except that a list of cache-resolved
    entities is merged member by member with the entities of the same
    typename and id already in ``target``. Source order wins.

    Args:
        target: The object to merge into.
        *sources: Objects to merge, in order.

    Returns:
        ``target``.
    """
    if not isinstance(target, dict):
        return target

    for source in sources:
        if not isinstance(source, dict):
            continue
        for key, value in source.items():
            if isinstance(value, dict):
                if not isinstance(target.get(key), dict):
                    target[key] = {}
                index_wise_deep_merge(target[key], value)
                continue

            current = target.get(key)
            if _is_entity_list(current) and _is_entity_list(value):
                value = _merge_entity_lists(current, value)
            target[key] = value

    return target
