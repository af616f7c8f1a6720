"""Redis cache store implementation."""

import time
from collections.abc import Iterable
from datetime import timedelta
from typing import Any

import redis.asyncio as redis

from partialql.core.errors import CacheValidationError


def _now_ms() -> int:
    return int(time.time() * 1000)


def _to_ms(ttl: timedelta) -> int:
    return int(ttl.total_seconds() * 1000)


class _RedisMutations:
    """Writes issued against a client or a pipeline.

    Pipeline commands are queued; awaiting them returns the pipeline
    without sending anything.
    """

    def __init__(
        self,
        store: "RedisCacheStore",
        operator: Any,
    ) -> None:
        self._store = store
        self._operator = operator

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        await self._operator.set(self._store._prefixed_key(key), value, px=_to_ms(ttl))

    async def clear(self, keys: Iterable[str]) -> None:
        prefixed = [self._store._prefixed_key(key) for key in keys]
        if prefixed:
            await self._operator.delete(*prefixed)

    async def add_members_to_set(
        self, key: str, members: Iterable[tuple[str, timedelta]]
    ) -> None:
        members = [(member, _to_ms(ttl)) for member, ttl in members]
        if not members:
            return
        key = self._store._prefixed_key(key)
        if self._store.allow_distinct_member_ttls:
            await self._add_members_to_zset(key, members)
        else:
            await self._add_members_to_regular_set(key, members)

    async def remove_members_from_set(self, key: str, members: Iterable[str]) -> None:
        members = list(members)
        if not members:
            return
        key = self._store._prefixed_key(key)
        if self._store.allow_distinct_member_ttls:
            await self._operator.zrem(key, *members)
        else:
            await self._operator.srem(key, *members)

    async def _add_members_to_zset(self, key: str, members: list[tuple[str, int]]) -> None:
        now = _now_ms()
        set_expires_at = await self._store.client.pexpiretime(key)
        scores: dict[str, int] = {}

        for member, ttl in members:
            if ttl < 0:
                raise CacheValidationError(
                    "Can't handle sub-zero value for member expiration in redis cache"
                )
            expires_at = now + ttl
            set_expires_at = max(set_expires_at, expires_at)
            scores[member] = expires_at

        await self._operator.zadd(key, scores)
        await self._operator.zremrangebyscore(key, "-inf", now)
        await self._operator.pexpireat(key, set_expires_at)

    async def _add_members_to_regular_set(self, key: str, members: list[tuple[str, int]]) -> None:
        now = _now_ms()
        set_ttl = await self._store.client.pexpiretime(key) - now

        for _member, ttl in members:
            if ttl < 0:
                raise CacheValidationError(
                    "Can't handle sub-zero value for set TTL in redis cache"
                )
            if set_ttl < 0 or ttl < set_ttl:
                set_ttl = ttl

        await self._operator.sadd(key, *(member for member, _ttl in members))
        await self._operator.pexpireat(key, now + set_ttl)


class RedisCachePipe(_RedisMutations):
    """Writes queued on a non-transactional redis pipeline."""

    def __init__(self, store: "RedisCacheStore") -> None:
        self._pipeline = store.client.pipeline(transaction=False)
        super().__init__(store, self._pipeline)

    async def execute(self) -> None:
        await self._pipeline.execute()


class RedisCacheStore(_RedisMutations):
    """Redis cache store for distributed deployments.

    Membership sets are sorted sets scored by each member's expiry
    timestamp, so members expire on their own. With
    ``allow_distinct_member_ttls=False`` plain sets are used instead and
    the whole set expires with its shortest-lived member.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "partialql",
        allow_distinct_member_ttls: bool = True,
        client: redis.Redis | None = None,
    ) -> None:
        """Initialize the Redis cache store.

        Args:
            redis_url: Redis connection URL, used when no client is given.
            key_prefix: Prefix for all keys.
            allow_distinct_member_ttls: Whether set members expire one by one.
            client: An existing redis client.
        """
        self.client: redis.Redis = client if client is not None else redis.from_url(redis_url)  # type: ignore
        self._key_prefix = key_prefix
        self.allow_distinct_member_ttls = allow_distinct_member_ttls
        super().__init__(self, self.client)

    async def get(self, key: str) -> bytes | None:
        return await self.client.get(self._prefixed_key(key))

    async def exists(self, key: str) -> bool:
        result = await self.client.exists(self._prefixed_key(key))
        return result > 0

    async def get_keys_starting_with(self, prefix: str) -> list[str]:
        """List keys starting with ``prefix`` using SCAN.

        Returns:
            Matching keys, without the store's key prefix.
        """
        pattern = f"{self._prefixed_key(prefix)}*"
        keys: list[str] = []
        cursor = 0

        while True:
            cursor, batch = await self.client.scan(cursor, match=pattern, count=100)
            keys.extend(self._unprefixed_key(key) for key in batch)
            if cursor == 0:
                break

        return keys

    async def get_set_members(self, key: str) -> list[str]:
        key = self._prefixed_key(key)
        if self.allow_distinct_member_ttls:
            members = await self.client.zrangebyscore(key, _now_ms(), "+inf")
        else:
            members = await self.client.smembers(key)
        return [self._decode(member) for member in members]

    def get_pipe(self) -> RedisCachePipe:
        return RedisCachePipe(self)

    def _prefixed_key(self, key: str) -> str:
        if key.startswith(f"{self._key_prefix}:"):
            return key
        return f"{self._key_prefix}:{key}"

    def _unprefixed_key(self, key: bytes | str) -> str:
        key = self._decode(key)
        return key.removeprefix(f"{self._key_prefix}:")

    @staticmethod
    def _decode(value: bytes | str) -> str:
        return value.decode() if isinstance(value, bytes) else value

    async def close(self) -> None:
        """Close the Redis connection."""
        await self.client.aclose()

    async def __aenter__(self) -> "RedisCacheStore":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
