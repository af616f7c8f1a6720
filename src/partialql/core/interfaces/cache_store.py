"""Cache store interface."""

from collections.abc import Iterable
from datetime import timedelta
from typing import Protocol


class ICacheMutations(Protocol):
    """Writes shared by stores and their pipes."""

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Store value with a TTL.

        Args:
            key: The cache key.
            value: The value to store as bytes.
            ttl: Time-to-live of the value.
        """
        ...

    async def clear(self, keys: Iterable[str]) -> None:
        """Delete values and membership sets stored under ``keys``."""
        ...

    async def add_members_to_set(
        self, key: str, members: Iterable[tuple[str, timedelta]]
    ) -> None:
        """Add members to the membership set at ``key``.

        Each member expires on its own after its TTL. Adding an existing
        member renews its expiry.

        Args:
            key: The set key.
            members: Pairs of member and TTL.

        Raises:
            CacheValidationError: If a TTL is negative. Nothing is written.
        """
        ...

    async def remove_members_from_set(self, key: str, members: Iterable[str]) -> None:
        """Remove members from the membership set at ``key``."""
        ...


class ICachePipe(ICacheMutations, Protocol):
    """Batch of writes applied together by :meth:`execute`."""

    async def execute(self) -> None:
        """Apply the queued writes in order."""
        ...


class ICacheStore(ICacheMutations, Protocol):
    """Contract for the storage behind the partial cache.

    Stores hold serialized responses and TTL-bounded membership sets
    linking entities to the responses containing them.
    """

    async def get(self, key: str) -> bytes | None:
        """Retrieve a stored value, or None if missing or expired."""
        ...

    async def exists(self, key: str) -> bool:
        """Check if a value or a non-empty membership set exists at ``key``."""
        ...

    async def get_keys_starting_with(self, prefix: str) -> list[str]:
        """List keys, of values and sets alike, starting with ``prefix``."""
        ...

    async def get_set_members(self, key: str) -> list[str]:
        """List the unexpired members of the membership set at ``key``."""
        ...

    def get_pipe(self) -> ICachePipe:
        """Start a batch of writes."""
        ...
