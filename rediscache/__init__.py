"""Redis-backed cache manager with typed get/set and pattern invalidation."""

from rediscache.cache import (
    CacheError,
    ConfigurationError,
    ConnectionError,
    DeserializationError,
    Endpoint,
    RedisCacheManager,
    RedisConnectionWrapper,
    SerializationError,
    get_connection_wrapper,
    reset_connection_wrapper,
)
from rediscache.config import CacheSettings
from rediscache.utils.logger import get_logger, setup_logging

__version__ = "1.0.0"

__all__ = [
    "CacheSettings",
    "RedisCacheManager",
    "RedisConnectionWrapper",
    "Endpoint",
    "get_connection_wrapper",
    "reset_connection_wrapper",
    "CacheError",
    "ConfigurationError",
    "ConnectionError",
    "DeserializationError",
    "SerializationError",
    "setup_logging",
    "get_logger",
]
