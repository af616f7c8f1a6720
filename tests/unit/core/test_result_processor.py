"""Tests for result processing and formatting."""

import copy
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from graphql import ExecutionResult, GraphQLError, parse

from partialql.core.entities.entity import EntityRecord, EntityWithLocation, PathPart
from partialql.core.services.result_formatter import ResultFormatter
from partialql.core.services.result_processor import ResultProcessor, default_should_cache_result

DOCUMENT = parse("query { a }")

CACHED_RESULT = {
    "data": {
        "dashboard": {
            "latestUpdates": [
                {
                    "__entityCacheId": "1",
                    "__entityCacheTypeName": "UpdateInfo",
                    "__typename": "UpdateInfo",
                    "id": "1",
                    "text": "Lorem ipsum",
                },
                {
                    "__entityCacheId": "2",
                    "__entityCacheTypeName": "UpdateInfo",
                    "__typename": "UpdateInfo",
                    "id": "2",
                    "text": "Dolor hic set amit",
                },
                {
                    "__entityCacheId": "3",
                    "__entityCacheTypeName": "UpdateInfo",
                    "__typename": "UpdateInfo",
                    "id": "3",
                    "text": "Foo bar",
                },
            ],
            "topActivity": {
                "__entityCacheId": 2,
                "__entityCacheTypeName": "Activity",
                "__typename": "Activity",
                "id": 2,
                "title": "Lorem ipsum",
            },
        }
    }
}


def update_info(id: str, text: str) -> dict:
    return {
        "__entityCacheId": id,
        "__entityCacheTypeName": "UpdateInfo",
        "__typename": "UpdateInfo",
        "id": id,
        "text": text,
    }


@pytest.fixture
def store_execution_result() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def processor(store_execution_result: AsyncMock) -> ResultProcessor:
    return ResultProcessor(
        store_execution_result=store_execution_result,
        ttl=timedelta(hours=1),
        await_write_before_response=True,
    )


class TestResultProcessor:
    """Tests for ResultProcessor."""

    @pytest.mark.asyncio
    async def test_collects_entities(
        self, processor: ResultProcessor, store_execution_result: AsyncMock
    ) -> None:
        """Test entities are collected with their locations and stored."""
        next_result = ExecutionResult(data=copy.deepcopy(CACHED_RESULT["data"]))

        processed = await processor.process("abc123", [next_result], DOCUMENT)

        store_execution_result.assert_awaited_once()
        kwargs = store_execution_result.await_args.kwargs
        assert kwargs["cache_key"] == "abc123"
        assert kwargs["ttl"] == timedelta(hours=1)
        assert kwargs["original_document"] is DOCUMENT
        assert kwargs["collected_entities"][0] == EntityWithLocation(
            entity=EntityRecord(typename="UpdateInfo", id="1"),
            path=(PathPart("Query"), PathPart("dashboard"), PathPart("latestUpdates", 0, "1")),
        )
        assert kwargs["collected_entities"][3] == EntityWithLocation(
            entity=EntityRecord(typename="Activity", id=2),
            path=(PathPart("Query"), PathPart("dashboard"), PathPart("topActivity")),
        )
        assert processed.collected_entities == kwargs["collected_entities"]

    @pytest.mark.asyncio
    async def test_stores_aliases_but_returns_clean_data(
        self, processor: ResultProcessor, store_execution_result: AsyncMock
    ) -> None:
        """Test aliases are kept in the store and stripped from the response."""
        next_result = ExecutionResult(data=copy.deepcopy(CACHED_RESULT["data"]))

        processed = await processor.process("abc123", [next_result], DOCUMENT)

        stored = store_execution_result.await_args.kwargs["execution_result"]
        assert stored["data"]["dashboard"]["topActivity"]["__entityCacheId"] == 2
        assert "__entityCacheId" not in processed.result.data["dashboard"]["topActivity"]

    @pytest.mark.asyncio
    async def test_merges_partial_result_into_cached_result(self, processor: ResultProcessor) -> None:
        """Test re-fetched fields replace cached ones."""
        next_result = ExecutionResult(
            data={
                "dashboard": {
                    "topActivity": {
                        "__entityCacheId": 2,
                        "__entityCacheTypeName": "Activity",
                        "title": "[Changed] Lorem ipsum",
                    }
                }
            }
        )

        processed = await processor.process("abc123", [next_result], DOCUMENT, CACHED_RESULT)

        data = processed.result.data
        assert data["dashboard"]["topActivity"] == {
            "__typename": "Activity",
            "id": 2,
            "title": "[Changed] Lorem ipsum",
        }
        assert data["dashboard"]["latestUpdates"][0] == {
            "__typename": "UpdateInfo",
            "id": "1",
            "text": "Lorem ipsum",
        }
        # the cached result is left untouched
        assert CACHED_RESULT["data"]["dashboard"]["topActivity"]["title"] == "Lorem ipsum"

    @pytest.mark.asyncio
    async def test_maps_single_resolutions_into_data(self, processor: ResultProcessor) -> None:
        """Test a resolution replaces the matching entity in place."""
        next_result = ExecutionResult(
            data={"_ENTITY_dashboard_latestUpdates_0": update_info("2", "[Changed] Dolor hic set amit")}
        )

        processed = await processor.process("abc123", [next_result], DOCUMENT, CACHED_RESULT)

        texts = [item["text"] for item in processed.result.data["dashboard"]["latestUpdates"]]
        assert texts == ["Lorem ipsum", "[Changed] Dolor hic set amit", "Foo bar"]
        assert "_ENTITY_dashboard_latestUpdates_0" not in processed.result.data

    @pytest.mark.asyncio
    async def test_maps_batch_resolutions_into_data(self, processor: ResultProcessor) -> None:
        """Test a batch resolution is matched by typename and id."""
        next_result = ExecutionResult(
            data={
                "_ENTITY_dashboard_latestUpdates": [
                    update_info("1", "[Changed] Lorem ipsum"),
                    update_info("3", "[Changed] Foo bar"),
                ]
            }
        )

        processed = await processor.process("abc123", [next_result], DOCUMENT, CACHED_RESULT)

        texts = [item["text"] for item in processed.result.data["dashboard"]["latestUpdates"]]
        assert texts == ["[Changed] Lorem ipsum", "Dolor hic set amit", "[Changed] Foo bar"]
        assert processed.result.data["dashboard"]["topActivity"]["title"] == "Lorem ipsum"

    @pytest.mark.asyncio
    async def test_results_with_errors_are_not_stored(
        self, processor: ResultProcessor, store_execution_result: AsyncMock
    ) -> None:
        """Test failed results are returned but not cached."""
        next_result = ExecutionResult(data={"a": None}, errors=[GraphQLError("boom")])

        processed = await processor.process("abc123", [next_result], DOCUMENT)

        store_execution_result.assert_not_awaited()
        assert processed.collected_entities is None
        assert processed.result.errors[0].message == "boom"

    @pytest.mark.asyncio
    async def test_store_failures_are_logged(
        self,
        processor: ResultProcessor,
        store_execution_result: AsyncMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test a failing store does not fail the request."""
        store_execution_result.side_effect = RuntimeError("store down")

        processed = await processor.process("abc123", [ExecutionResult(data={"a": 1})], DOCUMENT)

        assert processed.result.data == {"a": 1}
        assert "Unexpected error occurred when storing execution result" in caplog.text

    @pytest.mark.asyncio
    async def test_background_writes(self, store_execution_result: AsyncMock) -> None:
        """Test writes run in the background unless awaited."""
        processor = ResultProcessor(
            store_execution_result=store_execution_result,
            ttl=timedelta(minutes=5),
        )

        await processor.process("abc123", [ExecutionResult(data={"a": 1})], DOCUMENT)
        await processor.wait_for_pending_writes()

        store_execution_result.assert_awaited_once()

    def test_default_should_cache_result(self) -> None:
        """Test only error-free results are cached."""
        assert default_should_cache_result("k", ExecutionResult(data={}))
        assert not default_should_cache_result("k", ExecutionResult(data={}, errors=[GraphQLError("x")]))


class TestResultFormatter:
    """Tests for ResultFormatter."""

    def test_leaves_results_alone_by_default(self) -> None:
        """Test no metadata is added unless enabled."""
        result = ExecutionResult(data={"a": 1})

        formatted = ResultFormatter(ttl=timedelta(minutes=5)).format(result, "key")

        assert formatted.extensions is None

    def test_adds_cache_metadata(self) -> None:
        """Test hit, keys and link queries are reported."""
        formatter = ResultFormatter(ttl=timedelta(minutes=5), include_extension_metadata=True)
        result = ExecutionResult(data={"a": 1}, extensions={"tracing": True})

        formatted = formatter.format(
            result,
            "key",
            cached_result={"data": {}},
            collected_entities=[
                EntityWithLocation(EntityRecord("Todo", "1"), (PathPart("Query"),)),
                EntityWithLocation(EntityRecord("Query"), (PathPart("Query"),)),
            ],
            query=parse("{ a }"),
            link_queries=[parse("query _linkQuery { b }")],
        )

        cache = formatted.extensions["cache"]
        assert formatted.extensions["tracing"] is True
        assert cache["cacheKey"] == "key"
        assert cache["hit"] is True
        assert cache["knownEntities"] == {"Todo": ["1"]}
        assert cache["partialQuery"] == "{\n  a\n}"
        assert cache["linkQueries"] == ["query _linkQuery {\n  b\n}"]
        assert "expires" in cache
