"""Partial cache configuration entity."""

from dataclasses import dataclass, field
from datetime import timedelta


@dataclass
class PartialCacheConfig:
    """Partial response cache configuration.

    ``ttl`` bounds how long a stored response lives. ``entity_ttls``
    shortens the lifetime of membership records for specific typenames
    (as declared by ``@cacheEntity(ttl:)``).

    With ``await_write_before_response`` the response is only returned
    once it has been written to the store; otherwise the write runs in
    the background.
    """

    enabled: bool = True
    ttl: timedelta | None = None
    entity_ttls: dict[str, timedelta] = field(default_factory=dict)
    key_prefix: str = "partialql"

    include_extension_metadata: bool = False
    await_write_before_response: bool = False

    # Fields tried in order when looking for a type's id field
    id_fields: tuple[str, ...] = ("id",)

    def __post_init__(self) -> None:
        """Set default TTL if not provided."""
        if self.ttl is None:
            self.ttl = timedelta(minutes=5)
