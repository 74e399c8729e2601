# tests/test_rate_limit.py
from types import SimpleNamespace

from gateway.services import rate_limit
from gateway.services.rate_limit import FixedWindowRateLimiter


def test_limit_is_per_client():
    limiter = FixedWindowRateLimiter(limit=2, window_seconds=60)

    assert limiter.hit("10.0.0.1").allowed
    second = limiter.hit("10.0.0.1")
    assert second.allowed and second.remaining == 0
    third = limiter.hit("10.0.0.1")
    assert not third.allowed
    assert 1 <= third.retry_after <= 60

    assert limiter.hit("10.0.0.2").allowed


def test_window_resets(monkeypatch):
    now = [500.0]
    monkeypatch.setattr(rate_limit, "time", SimpleNamespace(monotonic=lambda: now[0]))
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60)

    assert limiter.hit("c").allowed
    assert not limiter.hit("c").allowed
    now[0] += 60
    assert limiter.hit("c").allowed


def test_zero_limit_disables_limiting():
    limiter = FixedWindowRateLimiter(limit=0, window_seconds=60)
    assert not limiter.enabled
    assert all(limiter.hit("c").allowed for _ in range(500))


def test_expired_windows_are_swept_once_per_window(monkeypatch):
    now = [0.0]
    monkeypatch.setattr(rate_limit, "time", SimpleNamespace(monotonic=lambda: now[0]))
    limiter = FixedWindowRateLimiter(limit=5, window_seconds=60, prune_threshold=2)
    sweeps = []
    original = limiter._prune
    monkeypatch.setattr(limiter, "_prune", lambda at: (sweeps.append(at), original(at)))

    for client in ("a", "b", "c"):
        limiter.hit(client)
    assert sweeps == []

    now[0] = 60.0
    limiter.hit("d")
    assert sweeps == [60.0]
    assert set(limiter._windows) == {"d"}

    now[0] = 61.0
    limiter.hit("e")
    limiter.hit("f")
    assert sweeps == [60.0]
    assert set(limiter._windows) == {"d", "e", "f"}
