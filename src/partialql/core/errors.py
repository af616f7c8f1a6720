"""Errors raised by partialql."""


class PartialCacheError(Exception):
    """Base class for partialql errors."""


class CacheValidationError(PartialCacheError):
    """Raised when a store receives an invalid write, such as a negative TTL."""


class CacheResolutionError(PartialCacheError):
    """Raised when a field cannot be turned into an entity link.

    Happens when a selection set under a cache-resolved coordinate has
    no id field to identify the entity by.
    """


class DataPathError(PartialCacheError):
    """Raised when a data path or entity reference string is malformed."""


class SerializationError(PartialCacheError):
    """Raised when serialization or deserialization fails."""
