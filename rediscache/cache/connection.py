"""Redis connection sharing and node enumeration.

This module provides the RedisConnectionWrapper, which owns the single
long-lived Redis client of the process and hands it out to every cache
manager, plus administrative per-node handles used for key scans.
"""

import threading
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional, Union
from urllib.parse import urlsplit, urlunsplit

import redis.asyncio as redis
from redis.asyncio.cluster import RedisCluster

from rediscache.cache.exceptions import ConfigurationError
from rediscache.config import CacheSettings
from rediscache.utils.logger import get_logger

logger = get_logger(__name__, component="redis_connection")

RedisClient = Union[redis.Redis, RedisCluster]


@dataclass(frozen=True)
class Endpoint:
    """Address of one Redis node."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class RedisServer:
    """
    Administrative handle for a single Redis node.

    Only used to enumerate keys for bulk removal; reads and writes of
    individual keys always go through the shared database client.

    Attributes:
        client: Client connected to this node
        endpoint: Node address
        database: Logical database the client is bound to
    """

    def __init__(
        self,
        client: redis.Redis,
        endpoint: Endpoint,
        database: int = 0,
        scan_count: int = 250,
    ) -> None:
        self.client = client
        self.endpoint = endpoint
        self.database = database
        self.scan_count = scan_count

    async def keys(self, pattern: str = "*") -> AsyncIterator[str]:
        """
        Iterate over the node's keys matching a glob pattern.

        Uses incremental SCAN, so the node is never blocked the way KEYS
        would block it. Keys written while the scan runs may or may not
        be returned.

        Args:
            pattern: Redis glob pattern (case-sensitive)

        Yields:
            Matching key names decoded as UTF-8
        """
        async for key in self.client.scan_iter(match=pattern, count=self.scan_count):
            yield key.decode("utf-8") if isinstance(key, bytes) else key


class RedisConnectionWrapper:
    """
    Owner of the process-wide Redis connection.

    The client is expensive to set up (pool creation, and topology
    discovery on a cluster) and cheap to reuse, so it is created once on
    first use and shared by every caller. The redis-py connection pool
    makes the client safe for concurrent use without external locking.

    Only the code that created the wrapper should call close().

    Example:
        >>> wrapper = RedisConnectionWrapper(CacheSettings(redis_url="redis://localhost:6379/0"))
        >>> db = wrapper.get_database()
        >>> for endpoint in await wrapper.get_endpoints():
        ...     server = wrapper.get_server(endpoint)
    """

    def __init__(self, settings: CacheSettings) -> None:
        self.settings = settings
        self._client: Optional[RedisClient] = None
        self._servers: Dict[Endpoint, RedisServer] = {}
        self._lock = threading.Lock()

    def _client_kwargs(self) -> Dict[str, object]:
        kwargs: Dict[str, object] = {
            "max_connections": self.settings.max_connections,
            "socket_timeout": self.settings.socket_timeout,
            "socket_connect_timeout": self.settings.socket_connect_timeout,
        }
        if not self.settings.cluster:
            kwargs["retry_on_timeout"] = self.settings.retry_on_timeout
        return kwargs

    def _create_client(self) -> RedisClient:
        redis_url = self.settings.redis_url.strip()
        if not redis_url:
            raise ConfigurationError()

        try:
            if self.settings.cluster:
                client = RedisCluster.from_url(redis_url, **self._client_kwargs())
            else:
                client = redis.Redis.from_url(redis_url, **self._client_kwargs())
        except ValueError as e:
            logger.error(
                "redis_connection_invalid_url",
                redis_url=self.settings.redacted_url,
                error=str(e),
            )
            raise ConfigurationError(f"Invalid Redis connection string: {e}") from e

        logger.info(
            "redis_connection_created",
            redis_url=self.settings.redacted_url,
            cluster=self.settings.cluster,
            max_connections=self.settings.max_connections,
        )
        return client

    def get_database(self) -> RedisClient:
        """
        Return the shared client bound to the configured logical database.

        The client is created on the first call; later calls return the
        same object. No network I/O happens here, redis-py connects on
        the first command.

        Raises:
            ConfigurationError: If the connection string is empty or invalid
        """
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._create_client()
        return self._client

    @property
    def database(self) -> int:
        """Logical database index used by the shared client."""
        return self._database_of(self.get_database())

    @staticmethod
    def _database_of(client: RedisClient) -> int:
        if isinstance(client, RedisCluster):
            return 0
        return int(client.connection_pool.connection_kwargs.get("db") or 0)

    async def get_endpoints(self) -> List[Endpoint]:
        """
        List every Redis node the connection knows about.

        Recomputed on each call because cluster topology can change. On a
        cluster this triggers topology discovery if no command has run yet.

        Returns:
            One endpoint for a standalone server, every node for a cluster
        """
        client = self.get_database()

        if isinstance(client, RedisCluster):
            await client.initialize()
            return [Endpoint(node.host, int(node.port)) for node in client.get_nodes()]

        kwargs = client.connection_pool.connection_kwargs
        if kwargs.get("path"):
            return [Endpoint(kwargs["path"], 0)]
        return [Endpoint(kwargs.get("host", "localhost"), int(kwargs.get("port", 6379)))]

    def get_server(self, endpoint: Endpoint) -> RedisServer:
        """
        Return an administrative handle for one node.

        Args:
            endpoint: Node address from get_endpoints()

        Returns:
            RedisServer able to scan that node's keys
        """
        client = self.get_database()
        database = self._database_of(client)

        # Nothing below may call get_database(): the lock is not reentrant.
        with self._lock:
            server = self._servers.get(endpoint)
            if server is None:
                if isinstance(client, RedisCluster):
                    node_client = redis.Redis.from_url(
                        self._node_url(endpoint), **self._client_kwargs()
                    )
                    logger.debug("redis_node_client_created", endpoint=str(endpoint))
                else:
                    node_client = client
                server = RedisServer(
                    node_client,
                    endpoint,
                    database=database,
                    scan_count=self.settings.scan_count,
                )
                self._servers[endpoint] = server
        return server

    def _node_url(self, endpoint: Endpoint) -> str:
        """Connection string pointing at a single cluster node."""
        parts = urlsplit(self.settings.redis_url.strip())
        userinfo, _, _ = parts.netloc.rpartition("@")
        netloc = f"{endpoint.host}:{endpoint.port}"
        if userinfo:
            netloc = f"{userinfo}@{netloc}"
        return urlunsplit(parts._replace(netloc=netloc, path=""))

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if Redis answered PING, False otherwise
        """
        try:
            result = await self.get_database().ping()
            logger.debug("redis_ping_success", result=result)
            return bool(result)

        except Exception as e:
            logger.error(
                "redis_ping_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    def is_available(self) -> bool:
        """
        Check if the shared client has been created.

        Note:
            This does not check that Redis is reachable. Use ping() for that.
        """
        return self._client is not None

    async def close(self) -> None:
        """
        Close the shared client and any per-node clients.

        Should only be called by the component that created the wrapper,
        during application shutdown.
        """
        with self._lock:
            client, self._client = self._client, None
            servers = list(self._servers.values())
            self._servers.clear()

        for server in servers:
            if server.client is not client:
                await self._close_client(server.client, endpoint=str(server.endpoint))

        if client is not None:
            if await self._close_client(client):
                logger.info("redis_connection_closed")

    @staticmethod
    async def _close_client(client: RedisClient, endpoint: Optional[str] = None) -> bool:
        """Close one client; a failure is logged so the others still get closed."""
        try:
            await client.aclose()
            return True

        except Exception as e:
            logger.error(
                "redis_close_error",
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False


_wrapper: Optional[RedisConnectionWrapper] = None
_wrapper_lock = threading.Lock()


def get_connection_wrapper(
    settings: Optional[CacheSettings] = None,
) -> RedisConnectionWrapper:
    """
    Return the process-wide connection wrapper, creating it on first use.

    Args:
        settings: Settings for the first call; defaults to CacheSettings() read from the environment.
            Ignored once the wrapper exists.
    """
    global _wrapper
    if _wrapper is None:
        with _wrapper_lock:
            if _wrapper is None:
                _wrapper = RedisConnectionWrapper(settings or CacheSettings())
    return _wrapper


async def reset_connection_wrapper() -> None:
    """Close and forget the process-wide wrapper (shutdown, tests)."""
    global _wrapper
    with _wrapper_lock:
        wrapper, _wrapper = _wrapper, None
    if wrapper is not None:
        await wrapper.close()
