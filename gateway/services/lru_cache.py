from collections import OrderedDict
from threading import RLock
from typing import Optional
import time


class LRUCacheImpl:
    """
    Thread-safe LRU cache of serialized payloads with optional per-entry TTL.
    Values are kept as JSON strings so every hit decodes a fresh copy.
    """
    def __init__(self, capacity: int = 10_000):
        self.capacity = max(1, capacity)
        self._data: "OrderedDict[str, tuple[float, str]]" = OrderedDict()
        self._lock = RLock()

    def get(self, key: str) -> Optional[str]:
        now = time.monotonic()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, raw = item
            if expires_at and expires_at <= now:
                # Expired: evict and miss
                self._data.pop(key, None)
                return None
            self._data.move_to_end(key)
            return raw

    def set(self, key: str, raw: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else 0.0
        with self._lock:
            if key in self._data:
                self._data.pop(key)
            elif len(self._data) >= self.capacity:
                self._data.popitem(last=False)  # Evict LRU
            self._data[key] = (expires_at, raw)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
