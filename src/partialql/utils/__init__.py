"""Utilities for partialql."""

from partialql.utils.entities import (
    collect_entity_records,
    collect_entity_with_location,
    deserialize_known_entities,
    get_known_entities,
    serialize_known_entities,
    strip_cache_aliases,
)
from partialql.utils.fragments import inline_fragments
from partialql.utils.hashing import hash_parts, normalize_query, stable_json
from partialql.utils.merge import index_wise_deep_merge
from partialql.utils.paths import data_path_to_str, str_to_data_path

__all__ = [
    "collect_entity_records",
    "collect_entity_with_location",
    "data_path_to_str",
    "deserialize_known_entities",
    "get_known_entities",
    "hash_parts",
    "index_wise_deep_merge",
    "inline_fragments",
    "normalize_query",
    "serialize_known_entities",
    "stable_json",
    "str_to_data_path",
    "strip_cache_aliases",
]
