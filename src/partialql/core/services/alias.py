"""Reversible aliases for cache resolutions."""

import re

from partialql.core.constants import PARTIAL_CACHE_ALIAS_PREFIX, QUERY_ROOT

_ROOT_PREFIX = f"{QUERY_ROOT}."
_INDEX_SUFFIX = re.compile(r"_\d+$")


def is_cache_alias_name(name: str) -> bool:
    return name.startswith(PARTIAL_CACHE_ALIAS_PREFIX)


def get_cache_alias(name: str) -> str:
    return f"{PARTIAL_CACHE_ALIAS_PREFIX}{name}"


def get_cache_resolver_alias(coordinates: str, index: int | None = None) -> str:
    """Encode a coordinate as a root field alias.

    ``Query.dashboard.latestUpdates`` with index 0 becomes
    ``_ENTITY_dashboard_latestUpdates_0``.

    Args:
        coordinates: A coordinate rooted at ``Query``.
        index: Position of the resolution among those of the coordinate.

    Returns:
        The alias.
    """
    if coordinates.startswith(_ROOT_PREFIX):
        coordinates = coordinates[len(_ROOT_PREFIX):]
    alias = get_cache_alias(coordinates.replace(".", "_"))
    if index is not None:
        alias += f"_{index}"
    return alias


def parse_cache_resolver_alias(alias: str) -> str:
    """Decode an alias back to the coordinate it was built from.

    The index suffix is dropped. Field names containing underscores
    cannot be told apart from separators and come back split.
    """
    body = _INDEX_SUFFIX.sub("", alias[len(PARTIAL_CACHE_ALIAS_PREFIX):])
    return f"{_ROOT_PREFIX}{body.replace('_', '.')}"
