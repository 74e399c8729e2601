# gateway/main.py

from contextlib import asynccontextmanager
import logging
import sys
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gateway.config import CORS_ORIGINS, HOST, LOG_LEVEL, PORT, PROVIDERS
from gateway.errors import install_error_handlers
from gateway.providers import load_providers, parse_provider_spec
from gateway.routers import anilist, flixhq, jikan, tmdb
from gateway.services.cache import CacheStore
from gateway.services.cache_backends import NoCache
from gateway.services.cache_factory import build_cache
from gateway.services.rate_limit import FixedWindowRateLimiter

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

ROUTERS = (anilist.router, jikan.router, flixhq.router, tmdb.router)


def create_app(
    cache: Optional[CacheStore] = None,
    providers: Optional[Dict[str, Any]] = None,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Anything not passed in comes from the environment: the cache backend from
    CACHE_BACKEND/REDIS_URL, providers from PROVIDERS, the limiter from
    MAX_API_REQUESTS/WINDOW_IN_MINUTES.
    """
    cache = cache if cache is not None else build_cache()
    if providers is None:
        providers = load_providers(parse_provider_spec(PROVIDERS))
    limiter = rate_limiter if rate_limiter is not None else FixedWindowRateLimiter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: reach the cache once so its state shows up in the logs
        await cache.connect()
        try:
            yield
        finally:
            await cache.close()

    app = FastAPI(title="Kenjitsu gateway", lifespan=lifespan)
    app.state.cache = cache
    app.state.providers = dict(providers)
    app.state.rate_limiter = limiter

    install_error_handlers(app)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        decision = limiter.hit(client)
        headers = {"x-ratelimit-limit": str(decision.limit)}
        if not decision.allowed:
            logger.warning("Rate limit exceeded for %s", client)
            headers["Retry-After"] = str(decision.retry_after)
            return JSONResponse(
                status_code=429,
                content={"error": f"Rate limit exceeded, retry in {decision.retry_after} seconds"},
                headers=headers,
            )
        response = await call_next(request)
        response.headers.update(headers)
        return response

    # Outermost, so 429s from the limiter carry CORS headers too.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    for router in ROUTERS:
        app.include_router(router)

    @app.get("/")
    async def welcome():
        return {
            "message": "Welcome to Kenjitsu",
            "routes": [router.prefix for router in ROUTERS],
        }

    @app.get("/health")
    async def health_check(request: Request):
        store: CacheStore = request.app.state.cache
        if isinstance(store, NoCache):
            state = "disabled"
        else:
            state = "connected" if await store.ping() else "unavailable"
        return {"status": "ok", "cache": state}

    return app


app = create_app()


def run() -> None:
    """Console entry point: validate the listen port and serve with uvicorn."""
    try:
        port = int(PORT)
    except ValueError:
        logger.error("Invalid PORT value %r; expected an integer", PORT)
        sys.exit(1)
    logger.info("Starting gateway on %s:%s", HOST, port)
    uvicorn.run(app, host=HOST, port=port, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
