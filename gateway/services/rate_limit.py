from dataclasses import dataclass
from threading import RLock
from typing import Dict, Tuple
import time

from gateway.config import MAX_API_REQUESTS, WINDOW_IN_MINUTES

PRUNE_THRESHOLD = 10_000


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int  # seconds until the current window resets


class FixedWindowRateLimiter:
    """
    Thread-safe fixed-window request counter keyed by client identity.
    A limit of 0 disables limiting. Once more than prune_threshold clients are
    tracked, expired windows are swept at most once per window.
    """
    def __init__(
        self,
        limit: int = MAX_API_REQUESTS,
        window_seconds: int = WINDOW_IN_MINUTES * 60,
        prune_threshold: int = PRUNE_THRESHOLD,
    ):
        self.limit = max(0, limit)
        self.window_seconds = max(1, window_seconds)
        self.prune_threshold = prune_threshold
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_prune = time.monotonic()
        self._lock = RLock()

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def hit(self, client: str) -> RateDecision:
        now = time.monotonic()
        with self._lock:
            started, count = self._windows.get(client, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[client] = (started, count)
            if len(self._windows) > self.prune_threshold and now - self._last_prune >= self.window_seconds:
                self._prune(now)

        retry_after = max(1, int(started + self.window_seconds - now))
        allowed = not self.enabled or count <= self.limit
        return RateDecision(allowed, self.limit, max(0, self.limit - count), retry_after)

    def _prune(self, now: float) -> None:
        self._last_prune = now
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for k in expired:
            self._windows.pop(k, None)
