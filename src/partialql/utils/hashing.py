"""Hashing utilities for response cache keys."""

import hashlib
import json
from typing import Any


def stable_json(value: Any) -> str:
    """Dump a value to JSON with sorted keys and no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def hash_parts(*parts: str) -> str:
    """Hash several strings joined with ``|``.

    Returns:
        The full hexadecimal SHA-256 digest.
    """
    return hashlib.sha256("|".join(parts).encode()).hexdigest()


def normalize_query(query: str) -> str:
    """Collapse whitespace so equivalent documents hash the same."""
    return " ".join(query.split())
