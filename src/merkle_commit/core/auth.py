"""
Merkle Commitment Service - API Key Authentication Middleware

Root publication replaces the trusted root, so an unrestricted write
would void every integrity guarantee. Write methods therefore require an
API key, except the proof and verification endpoints, which compute
over caller-supplied data and change no state.
"""

import secrets
from collections.abc import Callable

import structlog
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from merkle_commit.core.config import settings

logger = structlog.get_logger(__name__)

PUBLIC_PATHS = frozenset({
    "/health",
    "/ready",
    "/live",
    "/status",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/v1/proofs",
    "/api/v1/verify",
})

PUBLIC_PREFIXES = (
    "/metrics/",
)

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

API_KEY_HEADER = "X-API-Key"


class APIKeyAuthMiddleware(BaseHTTPMiddleware):
    """
    API key authentication middleware for the Merkle Commitment Service.

    Protects root publication (POST /api/v1/roots). When auth is enabled
    but no key is configured, writes are refused rather than left open.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        path = request.url.path

        if self._is_public(path) or request.method not in WRITE_METHODS:
            return await call_next(request)

        if not settings.API_AUTH_ENABLED:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"

        if not settings.API_KEY:
            logger.error(
                "API auth enabled without an API key, refusing write",
                path=path,
                method=request.method,
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"detail": "Root publication is not configured"},
            )

        provided_key = request.headers.get(API_KEY_HEADER)

        if not provided_key:
            logger.warning(
                "Missing API key on protected endpoint",
                path=path,
                method=request.method,
                client=client,
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": f"Missing {API_KEY_HEADER} header"},
            )

        if not secrets.compare_digest(provided_key.encode(), settings.API_KEY.encode()):
            logger.warning(
                "Invalid API key",
                path=path,
                method=request.method,
                client=client,
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid API key"},
            )

        return await call_next(request)

    @staticmethod
    def _is_public(path: str) -> bool:
        if path.rstrip("/") in PUBLIC_PATHS:
            return True
        return any(path.startswith(prefix) for prefix in PUBLIC_PREFIXES)
