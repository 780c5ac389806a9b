"""Redis caching layer.

This package provides:
- Shared connection management (RedisConnectionWrapper)
- Typed cache operations (RedisCacheManager)
- JSON serialization (serialize, deserialize)
- Error taxonomy (CacheError and subclasses)
"""

from rediscache.cache.connection import (
    Endpoint,
    RedisConnectionWrapper,
    RedisServer,
    get_connection_wrapper,
    reset_connection_wrapper,
)
from rediscache.cache.exceptions import (
    CacheError,
    ConfigurationError,
    ConnectionError,
    DeserializationError,
    SerializationError,
)
from rediscache.cache.manager import RedisCacheManager
from rediscache.cache.serialization import deserialize, serialize

__all__ = [
    # Connection
    "Endpoint",
    "RedisConnectionWrapper",
    "RedisServer",
    "get_connection_wrapper",
    "reset_connection_wrapper",
    # Cache manager
    "RedisCacheManager",
    # Serialization
    "serialize",
    "deserialize",
    # Exceptions
    "CacheError",
    "ConfigurationError",
    "ConnectionError",
    "DeserializationError",
    "SerializationError",
]
