"""
Custom exceptions for the Redis cache layer.

Absent keys are never reported through these exceptions: a missing key
is a normal result for get() and remove(). Everything here signals a
configuration, I/O or encoding failure the caller has to deal with.
"""

from typing import Optional


class CacheError(Exception):
    """
    Base exception for all cache related errors.

    Use this for catching any error raised by the cache layer.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ConfigurationError(CacheError):
    """
    Raised when the cache is constructed without a usable configuration.

    This is fatal and raised at construction time, never on first use.

    Example:
        >>> raise ConfigurationError("Redis connection string is empty")
    """

    def __init__(self, message: str = "Redis connection string is empty") -> None:
        super().__init__(message)


class ConnectionError(CacheError):
    """
    Raised when Redis is unreachable or the connection is lost mid-operation.

    Wraps redis-py connection and timeout errors; the original error is
    available as ``__cause__``. The cache layer never retries, so callers
    decide whether to retry or degrade.

    Attributes:
        operation: Cache operation that failed (e.g. "get", "clear")
        key: Key involved in the operation, if any
    """

    def __init__(
        self,
        message: str = "Redis connection failed",
        operation: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.key = key
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.message} (operation: {self.operation})"
        return self.message


class SerializationError(CacheError):
    """
    Raised when a value cannot be encoded for storage.

    Example:
        >>> raise SerializationError("Unable to serialize", value_type="function")
    """

    def __init__(self, message: str, value_type: Optional[str] = None) -> None:
        self.value_type = value_type
        super().__init__(message)


class DeserializationError(CacheError):
    """
    Raised when a stored payload cannot be decoded into the requested type.

    The cache never hands back a wrong value: a payload that is not valid
    JSON, or does not validate against the requested model, ends up here.
    """

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        self.key = key

        if key:
            message = f"{key}: {message}"

        super().__init__(message)
