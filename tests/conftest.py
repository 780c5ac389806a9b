"""Shared fixtures: an in-memory Redis stand-in with a controllable clock."""

import zlib
from datetime import timedelta
from fnmatch import fnmatchcase
from typing import Dict, List, Optional, Tuple

import pytest

from rediscache.cache.connection import Endpoint, RedisServer
from rediscache.cache.manager import RedisCacheManager
from rediscache.config import CacheSettings


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self) -> None:
        self.now = 0.0

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    """
    Minimal async Redis backend for the commands the cache uses.

    Keys are partitioned across ``nodes`` stores the way a cluster
    shards its keyspace, so scans of a single node only see part of it.
    """

    def __init__(self, clock: FakeClock, nodes: int = 1) -> None:
        self.clock = clock
        self.nodes: List[Dict[str, Tuple[bytes, Optional[float]]]] = [
            {} for _ in range(nodes)
        ]

    def node_for(self, key: str) -> Dict[str, Tuple[bytes, Optional[float]]]:
        return self.nodes[zlib.crc32(key.encode()) % len(self.nodes)]

    def live(self, node: Dict[str, Tuple[bytes, Optional[float]]], key: str) -> Optional[bytes]:
        entry = node.get(key)
        if entry is None:
            return None
        payload, expires_at = entry
        if expires_at is not None and expires_at <= self.clock():
            del node[key]
            return None
        return payload

    async def get(self, key: str) -> Optional[bytes]:
        return self.live(self.node_for(key), key)

    async def set(self, key: str, value: bytes, ex: Optional[timedelta] = None) -> bool:
        expires_at = None if ex is None else self.clock() + ex.total_seconds()
        self.node_for(key)[key] = (value, expires_at)
        return True

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self.live(self.node_for(key), key) is not None)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            node = self.node_for(key)
            if self.live(node, key) is not None:
                del node[key]
                deleted += 1
        return deleted


class FakeNodeClient:
    """Per-node client exposing SCAN over one key store."""

    def __init__(self, backend: FakeRedis, node: Dict[str, Tuple[bytes, Optional[float]]]) -> None:
        self.backend = backend
        self.node = node

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        node = self.node
        for key in list(node):
            if self.backend.live(node, key) is None:
                continue
            if fnmatchcase(key, match or "*"):
                yield key.encode("utf-8")


class FakeConnectionWrapper:
    """
    Connection wrapper serving a FakeRedis, one endpoint per shard.

    With ``replicas=True`` every shard also has a replica endpoint. A
    replica scans a copy of its shard taken when the topology is read,
    so deletes made through the primary have not reached it yet.
    """

    def __init__(self, backend: FakeRedis, replicas: bool = False) -> None:
        self.backend = backend
        self.shards: Dict[Endpoint, int] = {}
        for i in range(len(backend.nodes)):
            self.shards[Endpoint("10.0.0.%d" % (i + 1), 6379)] = i
            if replicas:
                self.shards[Endpoint("10.0.1.%d" % (i + 1), 6379)] = i
        self.endpoints = list(self.shards)
        self.replica_views: Dict[Endpoint, Dict[str, Tuple[bytes, Optional[float]]]] = {}

    def get_database(self) -> FakeRedis:
        return self.backend

    async def get_endpoints(self) -> List[Endpoint]:
        self.replica_views = {
            endpoint: dict(self.backend.nodes[index])
            for endpoint, index in self.shards.items()
            if endpoint.host.startswith("10.0.1.")
        }
        return list(self.endpoints)

    def get_server(self, endpoint: Endpoint) -> RedisServer:
        node = self.replica_views.get(endpoint)
        if node is None:
            node = self.backend.nodes[self.shards[endpoint]]
        return RedisServer(FakeNodeClient(self.backend, node), endpoint)


@pytest.fixture
def settings():
    """Settings pointing at a local Redis (never contacted by unit tests)."""
    return CacheSettings(redis_url="redis://localhost:6379/0")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    """Three-shard in-memory backend."""
    return FakeRedis(clock, nodes=3)


@pytest.fixture
def connection(backend):
    return FakeConnectionWrapper(backend)


@pytest.fixture
def manager(settings, connection):
    """RedisCacheManager over the in-memory backend."""
    return RedisCacheManager(settings, connection)


@pytest.fixture
def replicated_manager(settings, backend):
    """RedisCacheManager whose shards are each reachable through two endpoints."""
    return RedisCacheManager(settings, FakeConnectionWrapper(backend, replicas=True))
