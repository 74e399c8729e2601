# tests/test_cache_store.py
import asyncio
from types import SimpleNamespace

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from gateway.services import lru_cache
from gateway.services.cache import ttl_seconds
from gateway.services.cache_backends import InProcessLRUCache, NoCache, RedisCache
from gateway.services.cache_factory import build_cache


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def monotonic(self):
        return self.now


@pytest.fixture
def clock(monkeypatch):
    c = _Clock()
    monkeypatch.setattr(lru_cache, "time", SimpleNamespace(monotonic=c.monotonic))
    return c


class _RecordingRedis:
    """Dict-backed stand-in for redis.asyncio.Redis (decode_responses=True)."""
    def __init__(self):
        self.data = {}
        self.commands = []

    async def ping(self):
        return True

    async def get(self, key):
        self.commands.append(("get", key))
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.commands.append(("set", key, ex))
        self.data[key] = value

    async def delete(self, key):
        self.commands.append(("delete", key))
        self.data.pop(key, None)

    async def flushall(self):
        self.commands.append(("flushall",))
        self.data.clear()

    async def aclose(self):
        pass


class _BrokenRedis:
    """Every command fails the way an unreachable server does."""
    async def _fail(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    ping = get = set = delete = flushall = aclose = _fail


# ---------- Memory backend ----------

def test_memory_round_trip_returns_equal_value():
    store = InProcessLRUCache(capacity=10)
    value = {"data": {"title": "進撃の巨人", "episodes": [1, 2, 3]}, "hasNextPage": False}

    asyncio.run(store.set("anilist-info-1", value, 2))

    assert asyncio.run(store.get("anilist-info-1")) == value


def test_memory_entry_expires_after_ttl_hours(clock):
    store = InProcessLRUCache(capacity=10)
    asyncio.run(store.set("k", {"data": [1]}, 1))

    clock.now += 3599
    assert asyncio.run(store.get("k")) == {"data": [1]}
    clock.now += 2
    assert asyncio.run(store.get("k")) is None


def test_memory_zero_ttl_never_expires(clock):
    store = InProcessLRUCache(capacity=10)
    asyncio.run(store.set("k", {"data": [1]}, 0))

    clock.now += 10 * 365 * 24 * 3600
    assert asyncio.run(store.get("k")) == {"data": [1]}


def test_memory_purge_one_key_and_everything():
    store = InProcessLRUCache(capacity=10)
    asyncio.run(store.set("a", {"data": 1}, 1))
    asyncio.run(store.set("b", {"data": 2}, 1))

    asyncio.run(store.purge("a"))
    assert asyncio.run(store.get("a")) is None
    assert asyncio.run(store.get("b")) == {"data": 2}

    asyncio.run(store.purge())
    assert asyncio.run(store.get("b")) is None


def test_memory_evicts_least_recently_used():
    store = InProcessLRUCache(capacity=2)
    asyncio.run(store.set("a", {"v": 1}, 1))
    asyncio.run(store.set("b", {"v": 2}, 1))
    asyncio.run(store.get("a"))
    asyncio.run(store.set("c", {"v": 3}, 1))

    assert asyncio.run(store.get("b")) is None
    assert asyncio.run(store.get("a")) == {"v": 1}


def test_undecodable_entry_is_a_miss():
    store = InProcessLRUCache(capacity=10)
    store._lru.set("broken", "{not json", None)

    assert asyncio.run(store.get("broken")) is None


def test_unserializable_value_is_skipped():
    store = InProcessLRUCache(capacity=10)
    asyncio.run(store.set("k", {"when": object()}, 1))

    assert asyncio.run(store.get("k")) is None


def test_ttl_conversion():
    assert ttl_seconds(0) is None
    assert ttl_seconds(1) == 3600
    assert ttl_seconds(168) == 168 * 3600
    with pytest.raises(ValueError):
        ttl_seconds(-1)


# ---------- Disabled backend ----------

def test_no_cache_always_misses():
    store = NoCache()
    asyncio.run(store.set("k", {"data": [1]}, 1))

    assert asyncio.run(store.get("k")) is None
    assert asyncio.run(store.ping()) is False


def test_no_cache_purge_never_raises():
    store = NoCache()
    assert asyncio.run(store.purge("anilist-info-1")) is None
    assert asyncio.run(store.purge()) is None
    assert asyncio.run(store.get("anilist-info-1")) is None


# ---------- Redis backend ----------

def test_redis_set_uses_expiry_in_seconds():
    client = _RecordingRedis()
    store = RedisCache("redis://unused", client=client)

    asyncio.run(store.set("mal-top-airing", {"data": [1]}, 12))

    assert client.commands == [("set", "mal-top-airing", 12 * 3600)]
    assert asyncio.run(store.get("mal-top-airing")) == {"data": [1]}


def test_redis_zero_ttl_stores_without_expiry():
    client = _RecordingRedis()
    store = RedisCache("redis://unused", client=client)

    asyncio.run(store.set("mal-info-42", {"data": {"id": 42}}, 0))

    assert client.commands == [("set", "mal-info-42", None)]


def test_redis_purge_deletes_key_or_flushes():
    client = _RecordingRedis()
    store = RedisCache("redis://unused", client=client)

    asyncio.run(store.purge("k"))
    asyncio.run(store.purge())

    assert client.commands == [("delete", "k"), ("flushall",)]


def test_redis_failures_degrade_to_miss_and_noop():
    store = RedisCache("redis://unused", client=_BrokenRedis())

    assert asyncio.run(store.get("k")) is None
    asyncio.run(store.set("k", {"data": [1]}, 1))
    asyncio.run(store.purge())
    assert asyncio.run(store.ping()) is False
    asyncio.run(store.connect())
    asyncio.run(store.close())


# ---------- Factory ----------

def test_build_cache_selects_backend():
    assert isinstance(build_cache("none", None), NoCache)
    assert isinstance(build_cache("memory", None, capacity=5), InProcessLRUCache)
    assert isinstance(build_cache("redis", None), NoCache)
    assert isinstance(build_cache("redis", "redis://localhost:6379/0"), RedisCache)
    assert isinstance(build_cache("memcached", None), NoCache)
