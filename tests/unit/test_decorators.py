"""Tests for invalidation decorators."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from partialql import (
    InMemoryCacheStore,
    LazyInvalidationStrategy,
    PartialCacheService,
)
from partialql.decorators import (
    _interpolate_string,
    configure,
    get_partial_cache_service,
    invalidates,
)


class TestConfigure:
    """Tests for configure."""

    def test_configure_sets_service(self) -> None:
        """Test the configured service is returned."""
        service = PartialCacheService(strategy=LazyInvalidationStrategy(InMemoryCacheStore()))

        configure(service)

        assert get_partial_cache_service() is service


class TestInvalidatesDecorator:
    """Tests for @invalidates decorator."""

    @pytest.fixture
    def service(self) -> AsyncMock:
        service = AsyncMock(spec=PartialCacheService)
        configure(service)
        return service

    @pytest.mark.asyncio
    async def test_invalidates_after_mutation(self, service: AsyncMock) -> None:
        """Test entities are invalidated once the function returns."""
        calls: list[str] = []

        @invalidates(entities=["Todo:{id}", "TodoList"])
        async def update_todo(id: str, text: str) -> dict:
            calls.append(id)
            service.invalidate_entities.assert_not_awaited()
            return {"id": id, "text": text}

        result = await update_todo(id="1", text="New")

        assert result == {"id": "1", "text": "New"}
        assert calls == ["1"]
        service.invalidate_entities.assert_awaited_once_with(["Todo:1", "TodoList"])

    @pytest.mark.asyncio
    async def test_failed_mutation_invalidates_nothing(self, service: AsyncMock) -> None:
        """Test nothing is invalidated when the function raises."""

        @invalidates(entities=["Todo:{id}"])
        async def delete_todo(id: str) -> None:
            raise ValueError("not found")

        with pytest.raises(ValueError):
            await delete_todo(id="1")

        service.invalidate_entities.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_service(self) -> None:
        """Test the decorator is a no-op until configured."""
        import partialql.decorators

        partialql.decorators._cache_service = None

        @invalidates(entities=["Todo:{id}"])
        async def update_todo(id: str) -> str:
            return id

        assert await update_todo(id="1") == "1"

    @pytest.mark.asyncio
    async def test_invalidation_reaches_store(self) -> None:
        """Test invalidation clears the entity's membership set."""
        store = InMemoryCacheStore()
        configure(PartialCacheService(strategy=LazyInvalidationStrategy(store)))
        await store.add_members_to_set("Todo:7", [("response", timedelta(minutes=1))])

        @invalidates(entities=["Todo:{id}"])
        async def update_todo(id: int) -> int:
            return id

        await update_todo(id=7)

        assert await store.exists("Todo:7") is False


class TestInterpolateString:
    """Tests for _interpolate_string."""

    def test_interpolates_kwargs(self) -> None:
        """Test placeholders are replaced with argument values."""
        assert _interpolate_string("Todo:{id}", {"id": 42}) == "Todo:42"

    def test_keeps_unknown_placeholders(self) -> None:
        """Test placeholders without an argument are kept."""
        assert _interpolate_string("Todo:{id}", {}) == "Todo:{id}"

    def test_multiple_placeholders(self) -> None:
        """Test several placeholders in one key."""
        assert _interpolate_string("{type}:{id}", {"type": "Todo", "id": "a"}) == "Todo:a"
