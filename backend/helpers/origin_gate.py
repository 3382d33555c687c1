"""
Origin allowlist enforcement.

Browsers declare the calling page in the ``Origin`` header. Only pages
served from an allowlisted origin may call the API; requests without the
header (same-origin navigation, curl, server-to-server) are let through.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Optional

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

CORS_DENIED_MESSAGE = "Not allowed by CORS"


class OriginGate:
    """Exact-match origin allowlist. Read-only after construction."""

    def __init__(self, allowed_origins: Iterable[str]):
        self.allowed_origins: frozenset[str] = frozenset(
            origin for origin in allowed_origins if origin
        )

    def is_allowed(self, origin: Optional[str]) -> bool:
        """
        Decide whether a request's declared origin may call the API.

        Args:
            origin: Value of the ``Origin`` header, or None when absent.

        Returns:
            True when the header is absent or an exact allowlist member.
        """
        if not origin:
            return True

        if origin in self.allowed_origins:
            return True

        logger.warning(
            f"Blocked origin: {origin!r}; allowed origins: {sorted(self.allowed_origins)}"
        )
        return False


class OriginGateMiddleware(BaseHTTPMiddleware):
    """
    Reject requests from disallowed origins before any route runs.

    Must wrap CORSMiddleware so that preflight requests from unknown
    origins are denied here too.
    """

    def __init__(self, app: ASGIApp, gate: OriginGate):
        super().__init__(app)
        self.gate = gate

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Deny with 403 or pass the request on."""
        if not self.gate.is_allowed(request.headers.get("origin")):
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"success": False, "message": CORS_DENIED_MESSAGE},
            )
        return await call_next(request)
