import json
import logging
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from gateway.config import CACHE_CAPACITY, DEFAULT_CACHE_TTL_HOURS
from .cache import CacheStore, ttl_seconds
from .lru_cache import LRUCacheImpl

logger = logging.getLogger(__name__)


def _dumps(value: Any) -> Optional[str]:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as ex:
        logger.error("cache: value is not JSON serializable, skipping: %s", ex)
        return None


def _loads(key: str, raw: Optional[str]) -> Optional[Any]:
    if raw is None:
        logger.debug("cache miss - key: %s", key)
        return None
    try:
        value = json.loads(raw)
    except ValueError as ex:
        logger.error("cache: failed to decode entry %s, treating as miss: %s", key, ex)
        return None
    logger.debug("cache hit - key: %s", key)
    return value


class NoCache(CacheStore):
    """No-op cache used when caching is disabled or no backend is configured."""
    async def ping(self) -> bool:
        return False

    async def get(self, key: str) -> Optional[Any]:
        return None

    async def set(self, key: str, value: Any, ttl_hours: int = DEFAULT_CACHE_TTL_HOURS) -> None:
        pass

    async def purge(self, key: Optional[str] = None) -> None:
        pass


class InProcessLRUCache(CacheStore):
    """In-process LRU cache backend (single instance deployments and tests)."""
    def __init__(self, capacity: int = CACHE_CAPACITY):
        self._lru = LRUCacheImpl(capacity=capacity)

    async def get(self, key: str) -> Optional[Any]:
        return _loads(key, self._lru.get(key))

    async def set(self, key: str, value: Any, ttl_hours: int = DEFAULT_CACHE_TTL_HOURS) -> None:
        raw = _dumps(value)
        if raw is not None:
            self._lru.set(key, raw, ttl_seconds(ttl_hours))

    async def purge(self, key: Optional[str] = None) -> None:
        if key:
            self._lru.delete(key)
        else:
            self._lru.clear()


class RedisCache(CacheStore):
    """
    Shared cache on Redis.
    Connection and command failures are logged and degrade to miss/no-op;
    they never reach the request path.
    """

    def __init__(self, url: str, client: Optional[aioredis.Redis] = None):
        self._url = url
        self._client = client if client is not None else aioredis.Redis.from_url(url, decode_responses=True)

    async def connect(self) -> None:
        if await self.ping():
            logger.info("cache: connected to redis")
        else:
            logger.warning("cache: redis unreachable at startup, serving without cache until it recovers")

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except (RedisError, OSError) as ex:
            logger.warning("cache: error while closing redis client: %s", ex)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError) as ex:
            logger.debug("cache: redis ping failed: %s", ex)
            return False

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._client.get(key)
        except (RedisError, OSError) as ex:
            logger.warning("cache: redis GET %s failed, treating as miss: %s", key, ex)
            return None
        return _loads(key, raw)

    async def set(self, key: str, value: Any, ttl_hours: int = DEFAULT_CACHE_TTL_HOURS) -> None:
        raw = _dumps(value)
        if raw is None:
            return
        expiry = ttl_seconds(ttl_hours)
        try:
            if expiry is None:
                await self._client.set(key, raw)
                logger.info("cache: stored permanently (key: %s)", key)
            else:
                await self._client.set(key, raw, ex=expiry)
                logger.info("cache: stored with TTL (key: %s, ttl: %s hours)", key, ttl_hours)
        except (RedisError, OSError) as ex:
            logger.warning("cache: redis SET %s failed, skipping: %s", key, ex)

    async def purge(self, key: Optional[str] = None) -> None:
        try:
            if key:
                await self._client.delete(key)
                logger.info("cache: cleared key %s", key)
            else:
                await self._client.flushall()
                logger.info("cache: entire cache has been purged")
        except (RedisError, OSError) as ex:
            logger.warning("cache: redis purge failed: %s", ex)
