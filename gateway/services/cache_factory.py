import logging
from typing import Optional

from fastapi import Request

from .cache import CacheStore
from .cache_backends import InProcessLRUCache, NoCache, RedisCache
from gateway.config import CACHE_BACKEND, CACHE_CAPACITY, REDIS_URL

logger = logging.getLogger(__name__)


def build_cache(
    backend: str = CACHE_BACKEND,
    redis_url: Optional[str] = REDIS_URL,
    capacity: int = CACHE_CAPACITY,
) -> CacheStore:
    """
    Returns a cache store based on configuration:
      - "none"   -> no-op backend (always misses)
      - "memory" -> in-process LRU (single instance)
      - "redis"  -> shared cache, requires REDIS_URL

    The store is created once per application and handed to routes through
    app.state, so tests can pass their own.
    """
    backend = (backend or "none").lower()
    if backend == "redis":
        if not redis_url:
            logger.warning("CACHE_BACKEND=redis but REDIS_URL is not set; caching disabled")
            return NoCache()
        return RedisCache(redis_url)
    if backend == "memory":
        return InProcessLRUCache(capacity=capacity)
    if backend != "none":
        logger.warning("Unknown CACHE_BACKEND %r; caching disabled", backend)
    return NoCache()


def get_cache(request: Request) -> CacheStore:
    """FastAPI dependency returning the application's cache store."""
    return request.app.state.cache
