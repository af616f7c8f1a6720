"""Cache metadata carried in ``extensions.cache`` of stored responses."""

from dataclasses import dataclass, field
from typing import Any

EXTENSION_KEY = "cache"


@dataclass
class CacheMetadata:
    """Bookkeeping attached to a response.

    Stored responses carry the original document, the entities they
    contain and, once invalidated under the eager strategy, the
    precomputed partial query and its link selections. Responses
    returned to clients may carry hit and link query information.
    """

    cache_key: str | None = None
    expires: str | None = None
    hit: bool | None = None
    known_entities: dict[str, list[Any]] | None = None
    original_document: str | None = None
    partial_query: str | None = None
    link_selections: dict[str, str] | None = None
    link_queries: list[str] = field(default_factory=list)

    _WIRE_NAMES = {
        "cache_key": "cacheKey",
        "expires": "expires",
        "hit": "hit",
        "known_entities": "knownEntities",
        "original_document": "originalDocument",
        "partial_query": "partialQuery",
        "link_selections": "linkSelections",
        "link_queries": "linkQueries",
    }

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape used in responses, skipping empty fields."""
        data: dict[str, Any] = {}
        for attr, wire in self._WIRE_NAMES.items():
            value = getattr(self, attr)
            if value is None or value == []:
                continue
            data[wire] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheMetadata":
        """Read metadata from its JSON shape."""
        kwargs = {
            attr: data[wire]
            for attr, wire in cls._WIRE_NAMES.items()
            if wire in data
        }
        return cls(**kwargs)

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> "CacheMetadata | None":
        """Read metadata from a serialized response, if it has any."""
        extensions = result.get("extensions") or {}
        data = extensions.get(EXTENSION_KEY)
        if not isinstance(data, dict):
            return None
        return cls.from_dict(data)

    def attach_to(self, result: dict[str, Any]) -> dict[str, Any]:
        """Write this metadata into a serialized response's extensions."""
        extensions = dict(result.get("extensions") or {})
        extensions[EXTENSION_KEY] = self.to_dict()
        result["extensions"] = extensions
        return result
