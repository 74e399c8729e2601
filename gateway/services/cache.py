from abc import ABC, abstractmethod
from typing import Any, Optional

from gateway.config import DEFAULT_CACHE_TTL_HOURS

SECONDS_PER_HOUR = 3600


class CacheStore(ABC):
    """
    Async key/value store with per-key TTL in hours (0 = keep until purged).

    Contract shared by every backend: a missing or failing backing store
    degrades to "always miss, writes are no-ops". Implementations catch their
    own backend errors so callers never branch on availability.
    """

    async def connect(self) -> None:
        """Open the backing connection (called once from the app lifespan)."""

    async def close(self) -> None:
        """Release the backing connection."""

    async def ping(self) -> bool:
        return True

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_hours: int = DEFAULT_CACHE_TTL_HOURS) -> None:
        ...

    @abstractmethod
    async def purge(self, key: Optional[str] = None) -> None:
        """Delete one key, or everything when no key is given."""


def ttl_seconds(ttl_hours: int) -> Optional[int]:
    """Convert an hour-based TTL to seconds; None means no expiry."""
    if ttl_hours < 0:
        raise ValueError(f"ttl_hours must be >= 0, got {ttl_hours}")
    if ttl_hours == 0:
        return None
    return int(ttl_hours * SECONDS_PER_HOUR)
