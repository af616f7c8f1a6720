"""Serializers."""

from partialql.infrastructure.serializers.json import JsonSerializer

__all__ = ["JsonSerializer"]
