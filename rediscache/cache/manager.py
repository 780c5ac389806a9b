"""Cache manager for typed Redis caching.

This module provides the RedisCacheManager class which implements the
cache-aside contract (get, set, exists, remove, pattern removal, clear)
on top of the shared Redis connection.
"""

from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Set, Type, TypeVar

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from rediscache.cache.connection import RedisConnectionWrapper
from rediscache.cache.exceptions import ConfigurationError, ConnectionError
from rediscache.cache.serialization import deserialize, serialize
from rediscache.config import CacheSettings
from rediscache.utils.logger import get_logger

logger = get_logger(__name__, component="cache_manager")

T = TypeVar("T")


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise ValueError("Cache key must be a non-empty string")


@contextmanager
def _backend_errors(operation: str, key: Optional[str] = None) -> Iterator[None]:
    """Translate redis-py connection failures into ConnectionError."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.error(
            "cache_backend_error",
            operation=operation,
            key=key,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise ConnectionError(str(e) or type(e).__name__, operation=operation, key=key) from e


class RedisCacheManager:
    """
    Typed cache operations over the shared Redis connection.

    Works the same against one Redis server or a cluster shared by many
    application instances. The manager keeps no state between calls and
    needs no locks; concurrency safety comes from the connection.

    Absent keys are not errors: get() returns the default and remove()
    does nothing. Connection failures and encoding failures are raised
    to the caller; nothing is retried.

    Attributes:
        settings: Cache settings the manager was built with
        connection: Shared connection wrapper (not owned by the manager)
    """

    def __init__(
        self, settings: CacheSettings, connection: RedisConnectionWrapper
    ) -> None:
        """
        Bind the manager to the shared connection.

        Raises:
            ConfigurationError: If settings carry no connection string
        """
        if not settings.redis_url or not settings.redis_url.strip():
            raise ConfigurationError()

        self.settings = settings
        self.connection = connection
        self._db = connection.get_database()

    async def get(
        self, key: str, model: Optional[Type[T]] = None, default: Any = None
    ) -> Any:
        """
        Retrieve a cached value by key.

        Args:
            key: Cache key
            model: Type to validate the cached value into; raw JSON types when omitted
            default: Returned when the key is absent or expired

        Returns:
            The cached value, or default on a miss

        Raises:
            DeserializationError: If the stored payload does not decode into model
            ConnectionError: If Redis is unreachable

        Example:
            >>> profile = await manager.get("user:1:profile", model=UserProfile)
        """
        _check_key(key)

        with _backend_errors("get", key):
            payload = await self._db.get(key)

        if payload is None:
            logger.debug("cache_miss", key=key)
            return default

        value = deserialize(payload, model, key=key)
        logger.debug("cache_hit", key=key, data_size=len(payload))
        return value

    async def set(self, key: str, value: Any, ttl_minutes: int) -> None:
        """
        Store a value with a time to live.

        A None value is ignored and leaves any existing entry untouched.

        Args:
            key: Cache key
            value: Value to cache (must be JSON-serializable)
            ttl_minutes: Time to live in whole minutes, counted from now

        Raises:
            ValueError: If ttl_minutes is not a positive integer
            SerializationError: If the value cannot be encoded
            ConnectionError: If Redis is unreachable
        """
        _check_key(key)

        if isinstance(ttl_minutes, bool) or not isinstance(ttl_minutes, int) or ttl_minutes <= 0:
            raise ValueError(f"ttl_minutes must be a positive integer, got {ttl_minutes!r}")

        if value is None:
            logger.debug("cache_set_skipped", reason="value_is_none", key=key)
            return

        payload = serialize(value)

        with _backend_errors("set", key):
            await self._db.set(key, payload, ex=timedelta(minutes=ttl_minutes))

        logger.debug(
            "cache_set",
            key=key,
            ttl_minutes=ttl_minutes,
            data_size=len(payload),
        )

    async def is_set(self, key: str) -> bool:
        """
        Check whether a key is cached, without reading its value.

        Returns:
            True if the key exists and has not expired
        """
        _check_key(key)

        with _backend_errors("is_set", key):
            return bool(await self._db.exists(key))

    async def remove(self, key: str) -> None:
        """
        Delete a cached value. Removing an absent key is a no-op.

        Raises:
            ConnectionError: If Redis is unreachable
        """
        _check_key(key)

        with _backend_errors("remove", key):
            deleted = await self._db.delete(key)

        logger.debug("cache_remove", key=key, deleted=bool(deleted))

    async def remove_by_pattern(self, pattern: str) -> int:
        """
        Remove every key containing ``pattern``, on every known node.

        Each node is scanned for ``*pattern*`` and the matches are then
        deleted one at a time. This is best-effort and not atomic: keys
        written while the removal runs may survive, and keys that expire
        between scan and delete are skipped silently.

        The pattern is inserted into a Redis glob as-is, so ``*``, ``?``
        and ``[...]`` keep their glob meaning.

        Args:
            pattern: Substring to match (case-sensitive)

        Returns:
            Number of distinct matching keys found and deleted

        Example:
            >>> await manager.remove_by_pattern("user:1")
        """
        removed = await self._remove_matching(f"*{pattern}*", "remove_by_pattern")
        logger.info("cache_remove_by_pattern", pattern=pattern, removed=removed)
        return removed

    async def clear(self) -> int:
        """
        Remove every key in the manager's logical database, on every node.

        Keys are scanned and deleted one by one instead of FLUSHDB, which
        needs administrative permissions on many managed deployments.
        Not atomic, see remove_by_pattern().

        Returns:
            Number of distinct keys found and deleted
        """
        removed = await self._remove_matching("*", "clear")
        logger.info("cache_cleared", removed=removed)
        return removed

    async def _remove_matching(self, glob: str, operation: str) -> int:
        # Replicas report their primary's keys too; each key is deleted once.
        seen: Set[str] = set()

        with _backend_errors(operation):
            endpoints = await self.connection.get_endpoints()

        for endpoint in endpoints:
            server = self.connection.get_server(endpoint)

            # Snapshot first, then delete; the scan cursor is not stable under deletes.
            with _backend_errors(operation):
                keys: List[str] = [key async for key in server.keys(pattern=glob)]

            new_keys = [key for key in dict.fromkeys(keys) if key not in seen]
            for key in new_keys:
                await self.remove(key)
            seen.update(new_keys)

            logger.debug(
                "cache_endpoint_scanned",
                operation=operation,
                endpoint=str(endpoint),
                matched=len(keys),
                removed=len(new_keys),
            )

        return len(seen)

    async def get_or_fetch(
        self,
        key: str,
        fetch_func: Callable[[], Awaitable[Any]],
        ttl_minutes: int,
        model: Optional[Type[T]] = None,
    ) -> Any:
        """
        Get from cache, or fetch and cache on a miss (cache-aside pattern).

        Args:
            key: Cache key
            fetch_func: Async function producing the value on a miss
            ttl_minutes: Time to live for the fetched value
            model: Type to validate a cached value into

        Returns:
            Cached or freshly fetched value

        Example:
            >>> async def load_profile():
            ...     return await db.fetch_profile(1)
            >>> profile = await manager.get_or_fetch("user:1:profile", load_profile, 30)
        """
        cached = await self.get(key, model=model)

        if cached is not None:
            logger.info("cache_hit_get_or_fetch", key=key)
            return cached

        logger.info("cache_miss_fetching", key=key)

        try:
            data = await fetch_func()
        except Exception as e:
            logger.error(
                "fetch_function_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        await self.set(key, data, ttl_minutes)
        return data

    async def close(self) -> None:
        """
        Release the manager.

        Intentionally does nothing: the connection is shared and belongs
        to whoever created the RedisConnectionWrapper.
        """

    async def __aenter__(self) -> "RedisCacheManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
