"""Shared fixtures for invalidation strategy tests."""

import copy
from typing import Any

import pytest
from graphql import DocumentNode, parse

from partialql.core.entities.entity import EntityWithLocation
from partialql.utils.entities import collect_entity_records

DOCUMENT = parse("""
    query Todos {
      __entityCacheTypeName: __typename
      todos {
        __entityCacheTypeName: __typename
        __entityCacheId: id
        id
        text
      }
    }
""")

RESULT = {
    "data": {
        "__entityCacheTypeName": "Query",
        "todos": [
            {"__entityCacheTypeName": "Todo", "__entityCacheId": "1", "id": "1", "text": "a"},
            {"__entityCacheTypeName": "Todo", "__entityCacheId": "2", "id": "2", "text": "b"},
        ],
    }
}


class FakeTimer:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def document() -> DocumentNode:
    return DOCUMENT


@pytest.fixture
def result() -> dict[str, Any]:
    return copy.deepcopy(RESULT)


@pytest.fixture
def collected(result: dict[str, Any]) -> list[EntityWithLocation]:
    return collect_entity_records(result["data"])
