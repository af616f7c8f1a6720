"""Helpers shared by invalidation strategies."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from partialql.core.entities.entity import EntityRecord
from partialql.core.errors import SerializationError
from partialql.core.interfaces.cache_store import ICacheStore
from partialql.core.interfaces.serializer import ISerializer

logger = logging.getLogger(__name__)

SetMemberGetter = Callable[[str], Awaitable[list[str]]]


def create_cache_set_member_getter(store: ICacheStore) -> SetMemberGetter:
    """Read membership sets, each at most once per getter."""
    members_by_key: dict[str, list[str]] = {}

    async def get_set_members(key: str) -> list[str]:
        members = members_by_key.get(key)
        if members is None:
            members = await store.get_set_members(key)
            members_by_key[key] = members
        return members

    return get_set_members


async def get_entity_keys_to_invalidate(
    store: ICacheStore,
    build_entity_key: Callable[[EntityRecord], str],
    entities: Iterable[EntityRecord],
) -> list[str]:
    """Expand entities to the keys of their membership sets.

    An entity without an id stands for every entity of its typename, so
    its expansion includes every ``Typename:<id>`` key in the store.

    Returns:
        Unique keys in discovery order.
    """
    keys: dict[str, None] = {}
    searches = []

    for entity in entities:
        keys[build_entity_key(entity)] = None
        if entity.id is None:
            searches.append(store.get_keys_starting_with(f"{entity.typename}:"))

    for found in await asyncio.gather(*searches):
        keys.update(dict.fromkeys(found))

    return list(keys)


async def get_and_parse_cached_response(
    store: ICacheStore,
    cache_key: str,
    serializer: ISerializer,
) -> dict[str, Any] | None:
    """Load a stored response.

    Returns:
        The response, or None when missing or unreadable.
    """
    data = await store.get(cache_key)
    if data is None:
        return None

    try:
        result = serializer.deserialize(data)
    except SerializationError:
        logger.error(
            f"Error deserializing cached result {cache_key}, falling back to uncached execution"
        )
        return None

    if not isinstance(result, dict):
        logger.error(f"Cached result {cache_key} is not an object, falling back to uncached execution")
        return None
    return result
