"""Tests for RedisCacheStore."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from partialql.core.errors import CacheValidationError
from partialql.infrastructure.stores.redis_store import RedisCacheStore

NOW_MS = 1_000_000


@pytest.fixture
def client() -> MagicMock:
    """Create a mocked redis client."""
    client = MagicMock()
    for name in (
        "get",
        "exists",
        "scan",
        "zrangebyscore",
        "smembers",
        "set",
        "delete",
        "zadd",
        "zrem",
        "zremrangebyscore",
        "sadd",
        "srem",
        "pexpireat",
        "pexpiretime",
        "aclose",
    ):
        setattr(client, name, AsyncMock())
    return client


@pytest.fixture
def store(client: MagicMock) -> RedisCacheStore:
    return RedisCacheStore(client=client)


@pytest.fixture(autouse=True)
def frozen_clock():
    with patch("partialql.infrastructure.stores.redis_store._now_ms", return_value=NOW_MS):
        yield


class TestRedisCacheStore:
    """Tests for RedisCacheStore."""

    def test_prefixed_key(self, store: RedisCacheStore) -> None:
        """Test keys are prefixed once."""
        assert store._prefixed_key("Todo:1") == "partialql:Todo:1"
        assert store._prefixed_key("partialql:abc") == "partialql:abc"

    @pytest.mark.asyncio
    async def test_get_and_exists(self, store: RedisCacheStore, client: MagicMock) -> None:
        """Test reads use prefixed keys."""
        client.get.return_value = b"value"
        client.exists.return_value = 0

        assert await store.get("key") == b"value"
        assert await store.exists("key") is False
        client.get.assert_awaited_once_with("partialql:key")
        client.exists.assert_awaited_once_with("partialql:key")

    @pytest.mark.asyncio
    async def test_set_uses_milliseconds(self, store: RedisCacheStore, client: MagicMock) -> None:
        """Test values are written with a millisecond TTL."""
        await store.set("key", b"value", timedelta(seconds=2))

        client.set.assert_awaited_once_with("partialql:key", b"value", px=2000)

    @pytest.mark.asyncio
    async def test_clear(self, store: RedisCacheStore, client: MagicMock) -> None:
        """Test clearing deletes all keys at once, and nothing when empty."""
        await store.clear(["a", "b"])
        await store.clear([])

        client.delete.assert_awaited_once_with("partialql:a", "partialql:b")

    @pytest.mark.asyncio
    async def test_get_keys_starting_with_scans_all_pages(
        self, store: RedisCacheStore, client: MagicMock
    ) -> None:
        """Test SCAN runs until the cursor returns to zero."""
        client.scan.side_effect = [
            (7, [b"partialql:Todo:1>Query.todos"]),
            (0, [b"partialql:Todo:1"]),
        ]

        keys = await store.get_keys_starting_with("Todo:1")

        assert keys == ["Todo:1>Query.todos", "Todo:1"]
        assert client.scan.await_count == 2
        client.scan.assert_awaited_with(7, match="partialql:Todo:1*", count=100)

    @pytest.mark.asyncio
    async def test_get_set_members_from_sorted_set(
        self, store: RedisCacheStore, client: MagicMock
    ) -> None:
        """Test only members that have not expired are read."""
        client.zrangebyscore.return_value = [b"a", b"b"]

        assert await store.get_set_members("set") == ["a", "b"]
        client.zrangebyscore.assert_awaited_once_with("partialql:set", NOW_MS, "+inf")

    @pytest.mark.asyncio
    async def test_add_members_to_sorted_set(
        self, store: RedisCacheStore, client: MagicMock
    ) -> None:
        """Test members are scored by expiry and the set outlives them all."""
        client.pexpiretime.return_value = -2

        await store.add_members_to_set(
            "set", [("a", timedelta(seconds=1)), ("b", timedelta(seconds=5))]
        )

        client.zadd.assert_awaited_once_with(
            "partialql:set", {"a": NOW_MS + 1000, "b": NOW_MS + 5000}
        )
        client.zremrangebyscore.assert_awaited_once_with("partialql:set", "-inf", NOW_MS)
        client.pexpireat.assert_awaited_once_with("partialql:set", NOW_MS + 5000)

    @pytest.mark.asyncio
    async def test_sorted_set_keeps_longer_expiry(
        self, store: RedisCacheStore, client: MagicMock
    ) -> None:
        """Test an existing later set expiry is not shortened."""
        client.pexpiretime.return_value = NOW_MS + 60_000

        await store.add_members_to_set("set", [("a", timedelta(seconds=1))])

        client.pexpireat.assert_awaited_once_with("partialql:set", NOW_MS + 60_000)

    @pytest.mark.asyncio
    async def test_negative_member_ttl_raises(
        self, store: RedisCacheStore, client: MagicMock
    ) -> None:
        """Test sub-zero member TTLs are rejected before writing."""
        client.pexpiretime.return_value = -2

        with pytest.raises(CacheValidationError):
            await store.add_members_to_set("set", [("a", timedelta(seconds=-1))])

        client.zadd.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove_members(self, store: RedisCacheStore, client: MagicMock) -> None:
        """Test members are removed from the sorted set."""
        await store.remove_members_from_set("set", ["a", "b"])
        await store.remove_members_from_set("set", [])

        client.zrem.assert_awaited_once_with("partialql:set", "a", "b")

    @pytest.mark.asyncio
    async def test_close(self, store: RedisCacheStore, client: MagicMock) -> None:
        """Test the async context manager closes the client."""
        async with store:
            pass

        client.aclose.assert_awaited_once()


class TestRedisRegularSets:
    """Tests for stores without distinct member TTLs."""

    @pytest.fixture
    def store(self, client: MagicMock) -> RedisCacheStore:
        return RedisCacheStore(client=client, allow_distinct_member_ttls=False)

    @pytest.mark.asyncio
    async def test_set_expires_with_shortest_member(
        self, store: RedisCacheStore, client: MagicMock
    ) -> None:
        """Test the whole set expires with its shortest-lived member."""
        client.pexpiretime.return_value = -2

        await store.add_members_to_set(
            "set", [("a", timedelta(seconds=5)), ("b", timedelta(seconds=1))]
        )

        client.sadd.assert_awaited_once_with("partialql:set", "a", "b")
        client.pexpireat.assert_awaited_once_with("partialql:set", NOW_MS + 1000)

    @pytest.mark.asyncio
    async def test_get_set_members(self, store: RedisCacheStore, client: MagicMock) -> None:
        """Test members are read with SMEMBERS and decoded."""
        client.smembers.return_value = {b"a"}

        assert await store.get_set_members("set") == ["a"]

    @pytest.mark.asyncio
    async def test_remove_members(self, store: RedisCacheStore, client: MagicMock) -> None:
        """Test members are removed with SREM."""
        await store.remove_members_from_set("set", ["a"])

        client.srem.assert_awaited_once_with("partialql:set", "a")


class TestRedisCachePipe:
    """Tests for RedisCachePipe."""

    @pytest.mark.asyncio
    async def test_writes_are_queued_on_pipeline(
        self, store: RedisCacheStore, client: MagicMock
    ) -> None:
        """Test writes go to a non-transactional pipeline until executed."""
        pipeline = MagicMock()
        pipeline.set = AsyncMock()
        pipeline.delete = AsyncMock()
        pipeline.execute = AsyncMock()
        client.pipeline.return_value = pipeline

        pipe = store.get_pipe()
        await pipe.set("key", b"value", timedelta(seconds=1))
        await pipe.clear(["old"])

        client.pipeline.assert_called_once_with(transaction=False)
        pipeline.set.assert_awaited_once_with("partialql:key", b"value", px=1000)
        pipeline.delete.assert_awaited_once_with("partialql:old")
        client.set.assert_not_awaited()
        pipeline.execute.assert_not_awaited()

        await pipe.execute()

        pipeline.execute.assert_awaited_once()
