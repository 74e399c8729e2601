# gateway/errors.py

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.config import DOCS_URL

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for errors rendered as JSON by the gateway."""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def body(self) -> Dict[str, Any]:
        return {"error": self.message}


class ClientInputError(GatewayError):
    """Missing or invalid request parameter. Never retried, never cached."""
    status_code = 400


class UpstreamInvalidResponse(GatewayError):
    """Provider returned null or something that is not an object."""
    status_code = 502

    def __init__(self, message: str = "External provider returned an invalid response"):
        super().__init__(message)


class UpstreamReportedError(GatewayError):
    """Provider returned a structured error; its payload is passed through."""

    def __init__(self, message: str, payload: Dict[str, Any], status_code: int = 500):
        super().__init__(message, status_code)
        self.payload = payload

    def body(self) -> Dict[str, Any]:
        return self.payload


class InternalRuntimeError(GatewayError):
    """Unexpected failure while handling a request."""

    def __init__(self, message: str = "Internal server error occurred"):
        super().__init__(message)


class ProviderUnavailable(GatewayError):
    """The requested provider is not registered in this deployment."""
    status_code = 503

    def __init__(self, name: str):
        super().__init__(f"Provider '{name}' is not configured")
        self.name = name


def _freshness_headers(request: Request) -> Dict[str, str]:
    policy = getattr(request.state, "cache_policy", None)
    if policy is None:
        return {}
    return {"Cache-Control": policy.cache_control}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def _gateway_error(request: Request, exc: GatewayError):
        return JSONResponse(status_code=exc.status_code, content=exc.body(), headers=_freshness_headers(request))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={"message": "Looks like you are lost. Visit the docs", "url": DOCS_URL},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error occurred"})
