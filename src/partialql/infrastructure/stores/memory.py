"""In-memory cache store implementation."""

import time
from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import NamedTuple

from cachetools import TLRUCache  # type: ignore[import-untyped]

from partialql.core.errors import CacheValidationError


class _Entry(NamedTuple):
    value: bytes
    ttl: float


def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


def _validate_members(members: Iterable[tuple[str, timedelta]]) -> list[tuple[str, float]]:
    validated = []
    for member, ttl in members:
        seconds = ttl.total_seconds()
        if seconds < 0:
            raise CacheValidationError(
                f"Can't handle sub-zero TTL for member {member!r} of a membership set"
            )
        validated.append((member, seconds))
    return validated


class InMemoryCacheStore:
    """In-memory cache store for single-process deployments.

    Values live in a cachetools ``TLRUCache`` so each one expires after
    its own TTL. Membership sets map members to their expiry time so
    each member expires on its own.
    """

    def __init__(
        self,
        maxsize: int = 1000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory cache store.

        Args:
            maxsize: Maximum number of values held.
            timer: Clock used for expiry, in seconds.
        """
        self._maxsize = maxsize
        self._timer = timer
        self._values: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=maxsize,
            ttu=_time_to_use,
            timer=timer,
        )
        self._sets: dict[str, dict[str, float]] = {}

    async def get(self, key: str) -> bytes | None:
        entry = self._values.get(key)
        return entry.value if entry is not None else None

    async def exists(self, key: str) -> bool:
        return key in self._values or bool(self._live_members(key))

    async def get_keys_starting_with(self, prefix: str) -> list[str]:
        self._values.expire()
        keys = [key for key in list(self._values.keys()) if key.startswith(prefix)]
        keys.extend(
            key for key in list(self._sets) if key.startswith(prefix) and self._live_members(key)
        )
        return keys

    async def get_set_members(self, key: str) -> list[str]:
        return self._live_members(key)

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        self._set(key, value, ttl)

    async def clear(self, keys: Iterable[str]) -> None:
        self._clear(list(keys))

    async def add_members_to_set(
        self, key: str, members: Iterable[tuple[str, timedelta]]
    ) -> None:
        self._add_members(key, _validate_members(members))

    async def remove_members_from_set(self, key: str, members: Iterable[str]) -> None:
        self._remove_members(key, list(members))

    def get_pipe(self) -> "InMemoryCachePipe":
        return InMemoryCachePipe(self)

    def __len__(self) -> int:
        """Return the number of values in the store."""
        return len(self._values)

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def _set(self, key: str, value: bytes, ttl: timedelta) -> None:
        self._values[key] = _Entry(value, ttl.total_seconds())

    def _clear(self, keys: list[str]) -> None:
        for key in keys:
            self._values.pop(key, None)
            self._sets.pop(key, None)

    def _add_members(self, key: str, members: list[tuple[str, float]]) -> None:
        if not members:
            return
        now = self._timer()
        expiries = self._sets.setdefault(key, {})
        for member, seconds in members:
            expiries[member] = now + seconds

    def _remove_members(self, key: str, members: list[str]) -> None:
        expiries = self._sets.get(key)
        if expiries is None:
            return
        for member in members:
            expiries.pop(member, None)

    def _live_members(self, key: str) -> list[str]:
        expiries = self._sets.get(key)
        if not expiries:
            return []
        now = self._timer()
        for member in [m for m, expires_at in expiries.items() if expires_at <= now]:
            del expiries[member]
        if not expiries:
            del self._sets[key]
            return []
        return list(expiries)


class InMemoryCachePipe:
    """Queues writes to an :class:`InMemoryCacheStore`.

    Queued writes are applied in order, without yielding to the event
    loop in between.
    """

    def __init__(self, store: InMemoryCacheStore) -> None:
        self._store = store
        self._operations: list[Callable[[], None]] = []

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        self._operations.append(lambda: self._store._set(key, value, ttl))

    async def clear(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        self._operations.append(lambda: self._store._clear(keys))

    async def add_members_to_set(
        self, key: str, members: Iterable[tuple[str, timedelta]]
    ) -> None:
        validated = _validate_members(members)
        self._operations.append(lambda: self._store._add_members(key, validated))

    async def remove_members_from_set(self, key: str, members: Iterable[str]) -> None:
        members = list(members)
        self._operations.append(lambda: self._store._remove_members(key, members))

    async def execute(self) -> None:
        operations, self._operations = self._operations, []
        for operation in operations:
            operation()
