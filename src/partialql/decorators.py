"""Framework-agnostic invalidation decorators.

Mutation resolvers decorated with :func:`invalidates` invalidate the
entities they change through a configured PartialCacheService.
"""

import functools
import re
from collections.abc import Callable
from typing import Any, TypeVar

from partialql.core.services.cache_service import PartialCacheService

F = TypeVar("F", bound=Callable[..., Any])

# Module-level cache service reference
_cache_service: PartialCacheService | None = None


def configure(cache_service: PartialCacheService) -> None:
    """Configure the cache service for decorators.

    Must be called before using the @invalidates decorator.

    Args:
        cache_service: The cache service instance to use.

    Example:
        cache_service = PartialCacheService(
            strategy=LazyInvalidationStrategy(InMemoryCacheStore()),
            cache_resolvers=schema_config.cache_resolvers,
        )
        configure(cache_service)
    """
    global _cache_service
    _cache_service = cache_service


def get_partial_cache_service() -> PartialCacheService | None:
    """Get the configured cache service.

    Returns:
        The configured cache service, or None if not configured.
    """
    return _cache_service


def invalidates(
    entities: list[str],
) -> Callable[[F], F]:
    """Decorator invalidating entities after a mutation.

    Executes the decorated function and then invalidates the given
    entity keys. A key without an id (``Todo``) invalidates every entity
    of the type.

    Args:
        entities: Entity keys to invalidate. Supports {arg_name} interpolation.

    Returns:
        Decorated function.

    Example:
        @invalidates(entities=["Todo:{id}"])
        async def update_todo(id: str, text: str) -> Todo:
            return await db.update_todo(id, text)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            # Execute function first
            result = await func(*args, **kwargs)

            if _cache_service is not None:
                resolved = [_interpolate_string(entity, kwargs) for entity in entities]
                await _cache_service.invalidate_entities(resolved)

            return result

        return wrapper  # type: ignore

    return decorator


def _interpolate_string(template: str, kwargs: dict[str, Any]) -> str:
    """Interpolate {arg_name} placeholders in string.

    Args:
        template: String with {arg_name} placeholders.
        kwargs: Keyword arguments for interpolation.

    Returns:
        Interpolated string.
    """
    pattern = r"\{(\w+)\}"

    def replacer(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in kwargs:
            return str(kwargs[name])
        return match.group(0)  # Keep original if not found

    return re.sub(pattern, replacer, template)
