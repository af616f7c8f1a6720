"""Invalidation strategies."""

from partialql.strategies.eager import EagerInvalidationStrategy
from partialql.strategies.lazy import LazyInvalidationStrategy

__all__ = ["EagerInvalidationStrategy", "LazyInvalidationStrategy"]
