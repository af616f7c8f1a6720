"""Pytest configuration for partialql tests."""

import pytest


@pytest.fixture(autouse=True)
def reset_decorator_config():
    """Reset decorator configuration before each test."""
    import partialql.decorators

    # Store original value
    original_service = partialql.decorators._cache_service

    yield

    # Restore original value after test
    partialql.decorators._cache_service = original_service
