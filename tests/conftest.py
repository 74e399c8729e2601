# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from gateway.main import create_app
from gateway.services.cache_backends import InProcessLRUCache
from gateway.services.rate_limit import FixedWindowRateLimiter


# ---------- In-memory stand-ins used across tests ----------

class FakeProvider:
    """
    Answers any method call with a canned result and records (method, args).
    results: method name -> value, exception instance (raised) or callable(*args).
    """
    def __init__(self, default=None, **results):
        self.calls = []
        self._default = default
        self._results = results

    def _answer(self, name, args):
        self.calls.append((name, args))
        result = self._results.get(name, self._default)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(*args)
        return result

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def _method(*args):
            return self._answer(name, args)
        return _method

    def called(self, name):
        return [args for method, args in self.calls if method == name]


class AsyncFakeProvider(FakeProvider):
    """Same as FakeProvider, but every method is a coroutine."""
    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        async def _method(*args):
            return self._answer(name, args)
        return _method


class RecordingCache(InProcessLRUCache):
    """Memory cache that remembers every write as (key, ttl_hours)."""
    def __init__(self):
        super().__init__(capacity=1000)
        self.writes = []

    async def set(self, key, value, ttl_hours=1):
        self.writes.append((key, ttl_hours))
        await super().set(key, value, ttl_hours)


# ---------- Fixtures ----------

@pytest.fixture
def cache():
    return RecordingCache()


@pytest.fixture
def make_client(cache):
    """Build a TestClient around a fresh app with the given providers; rate limiting off by default."""
    def _make(providers=None, store=None, rate_limiter=None):
        app = create_app(
            cache=store if store is not None else cache,
            providers=providers or {},
            rate_limiter=rate_limiter or FixedWindowRateLimiter(limit=0),
        )
        return TestClient(app)
    return _make


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def async_fake_provider():
    return AsyncFakeProvider
