# gateway/services/policy.py

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from fastapi import Request
from fastapi.responses import JSONResponse

from gateway import config
from gateway.errors import InternalRuntimeError, UpstreamInvalidResponse, UpstreamReportedError
from .cache import CacheStore
from .result import (
    EmptinessPredicate,
    Empty,
    InvalidResponse,
    ProviderError,
    Success,
    classify,
    data_is_empty,
)

logger = logging.getLogger(__name__)

HOUR = 60 * 60
PAGINATION_FIELDS = ("hasNextPage", "currentPage", "totalResults", "perPage", "lastPage", "data")

TTLRule = Union[int, Callable[[Mapping[str, Any]], int], None]


@dataclass(frozen=True)
class CachePolicy:
    """
    Static caching/freshness rules for one route.

    ttl_hours: hours to keep a successful payload (0 = until purged), a
        callable deriving that from the payload, or None for routes whose
        responses are never stored.
    fields: top-level fields forwarded to the client (None = whole payload).
    """
    namespace: str
    s_maxage: int
    stale_while_revalidate: int = 300
    ttl_hours: TTLRule = None
    is_empty: EmptinessPredicate = data_is_empty
    fields: Optional[Tuple[str, ...]] = field(default=None)

    @property
    def cache_control(self) -> str:
        return f"public, s-maxage={self.s_maxage}, stale-while-revalidate={self.stale_while_revalidate}"

    @property
    def cacheable(self) -> bool:
        return self.ttl_hours is not None

    def key(self, *parts: Any) -> str:
        """Cache key: namespace followed by every response-affecting parameter."""
        rendered = ["all" if p is None else str(p) for p in parts]
        return "-".join([self.namespace, *rendered])

    def ttl_for(self, payload: Mapping[str, Any]) -> int:
        if callable(self.ttl_hours):
            return self.ttl_hours(payload)
        return int(self.ttl_hours or 0)

    def project(self, payload: Mapping[str, Any], *extra: str) -> Dict[str, Any]:
        if self.fields is None:
            return dict(payload)
        return {name: payload.get(name) for name in (*self.fields, *extra)}

    def engage(self, request: Request) -> "CachePolicy":
        """FastAPI dependency: remember the policy so error responses carry its headers too."""
        request.state.cache_policy = self
        return self


def status_ttl(finished: int, ongoing: int, finished_status: str = "finished airing") -> Callable[[Mapping[str, Any]], int]:
    """TTL rule keyed on data.status: long for finished media, short otherwise."""
    def _rule(payload: Mapping[str, Any]) -> int:
        data = payload.get("data") or {}
        status = str(data.get("status") or "").strip().lower() if isinstance(data, Mapping) else ""
        return finished if status == finished_status else ongoing
    return _rule


async def _invoke(fetch: Callable[[], Any]) -> Any:
    # Plain provider methods run in a worker thread; coroutines are awaited on the loop.
    result = await asyncio.to_thread(fetch)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _call_provider(fetch: Callable[[], Any], timeout: float) -> Any:
    if timeout and timeout > 0:
        return await asyncio.wait_for(_invoke(fetch), timeout=timeout)
    return await _invoke(fetch)


async def serve(
    policy: CachePolicy,
    cache: CacheStore,
    key: Optional[str],
    fetch: Callable[[], Any],
    context: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> JSONResponse:
    """
    Cache-first retrieval for one request.

    Returns the 200 response (cache hit, success or empty result) and raises a
    GatewayError for everything else. Only Success results are written back.
    Concurrent misses on one key may both reach the provider; the last write wins.
    """
    context = context or {}
    headers = {"Cache-Control": policy.cache_control}
    use_cache = policy.cacheable and key is not None

    if use_cache:
        cached = await cache.get(key)
        if cached is not None:
            return JSONResponse(status_code=200, content=cached, headers=headers)

    timeout = config.PROVIDER_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        raw = await _call_provider(fetch, timeout)
    except asyncio.TimeoutError:
        logger.error("Provider call timed out after %ss (namespace=%s, params=%s)", timeout, policy.namespace, context)
        raise InternalRuntimeError("Upstream provider timed out")
    except Exception:
        logger.exception("Internal runtime error (namespace=%s, params=%s)", policy.namespace, context)
        raise InternalRuntimeError()

    outcome = classify(raw, policy.is_empty)

    if isinstance(outcome, InvalidResponse):
        logger.warning("External provider returned %r (namespace=%s, params=%s)", outcome.received, policy.namespace, context)
        raise UpstreamInvalidResponse()

    if isinstance(outcome, ProviderError):
        logger.error("External API error: %s (namespace=%s, params=%s)", outcome.error, policy.namespace, context)
        raise UpstreamReportedError(outcome.error, policy.project(outcome.payload, "error"))

    body = policy.project(outcome.payload)
    if isinstance(outcome, Success) and use_cache:
        await cache.set(key, body, policy.ttl_for(outcome.payload))
    elif isinstance(outcome, Empty) and use_cache:
        logger.info("Empty result not cached (namespace=%s, params=%s)", policy.namespace, context)

    return JSONResponse(status_code=200, content=body, headers=headers)
