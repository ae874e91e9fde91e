"""Exception hierarchy for the resilient cache.

Only ConfigurationError escapes to callers (at construction time).
Storage and codec errors are raised by the lower layers and absorbed by
the orchestrator, which turns them into cache misses.
"""


class ResilientCacheError(Exception):
    """Base class for all cache errors."""


class ConfigurationError(ResilientCacheError, ValueError):
    """Invalid cache or retry configuration."""


class StorageError(ResilientCacheError):
    """A key-value store operation failed (quota, I/O, connection)."""


class CodecError(ResilientCacheError):
    """A cache entry could not be serialized or deserialized."""


class EncodeError(CodecError):
    """The cached value is not serializable."""


class DecodeError(CodecError):
    """The stored payload is malformed or does not match the entry schema."""


class NonRetryableError(ResilientCacheError):
    """Raised by a fetch function to stop the retry loop immediately.

    Useful for failures that will not heal on their own, such as an
    authorization error.
    """


def error_message(error: BaseException) -> str:
    """Return the human-readable message for a fetch failure."""
    message = str(error)
    return message if message else type(error).__name__
