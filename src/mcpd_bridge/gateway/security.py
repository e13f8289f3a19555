"""Security middleware for the HTTP gateway.

Controls, in order:
- Request size limit (413)
- Per-client rate limit on /api and /api/* (429)
- Shared-secret authentication on /api/* (401)
- Security response headers

API keys are accepted from, in order of precedence:
    X-API-Key header, Authorization: Bearer <key>, ?apiKey= query parameter

The /api index and /health stay public. WebSocket upgrades bypass this
middleware (BaseHTTPMiddleware only sees HTTP requests); /ws does its own
authentication.
"""

from __future__ import annotations

__all__ = [
    "SecurityMiddleware",
    "client_identifier",
    "extract_api_key",
    "validate_api_key",
]

import hmac
import logging
import math
from collections.abc import Iterable, Mapping

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from mcpd_bridge.constants import BACKEND_API_KEY_HEADER, MAX_REQUEST_BYTES
from mcpd_bridge.exceptions import RateLimited, Unauthorized
from mcpd_bridge.gateway.rate_limiter import ClientRateLimiter
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.system_logger import log_event


def validate_api_key(provided: str | None, accepted: Iterable[str]) -> bool:
    """Check a key against the accepted set in constant time.

    Every accepted key is compared, so timing does not reveal which (if
    any) key was close.

    Args:
        provided: Key presented by the client.
        accepted: Shared secrets.

    Returns:
        True if the key matches one of the accepted keys.
    """
    if not provided:
        return False
    matched = False
    for key in accepted:
        if hmac.compare_digest(provided.encode(), key.encode()):
            matched = True
    return matched


def extract_api_key(headers: Mapping[str, str], query_params: Mapping[str, str]) -> str | None:
    """Pull the API key from headers or query parameters."""
    key = headers.get(BACKEND_API_KEY_HEADER.lower()) or headers.get(BACKEND_API_KEY_HEADER)
    if key:
        return key

    auth_header = headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]

    return query_params.get("apiKey") or None


def client_identifier(request: Request) -> str:
    """Rate-limit key for a request (remote address)."""
    return request.client.host if request.client else "unknown"


def _is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


class SecurityMiddleware(BaseHTTPMiddleware):
    """Size limit, rate limit, authentication and response headers."""

    def __init__(
        self,
        app: ASGIApp,
        api_keys: Iterable[str],
        rate_limiter: ClientRateLimiter | None = None,
        max_request_bytes: int = MAX_REQUEST_BYTES,
    ) -> None:
        """Initialize middleware.

        Args:
            app: ASGI application.
            api_keys: Shared secrets accepted on /api/*.
            rate_limiter: Limiter for /api traffic (None disables limiting).
            max_request_bytes: Largest accepted Content-Length.
        """
        super().__init__(app)
        self.api_keys = frozenset(api_keys)
        self.rate_limiter = rate_limiter
        self.max_request_bytes = max_request_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # 1. Request size limit
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                if int(content_length) > self.max_request_bytes:
                    return JSONResponse(status_code=413, content={"error": "Request too large"})
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "Invalid content-length header"})

        path = request.url.path
        if _is_api_path(path) and request.method != "OPTIONS":
            # 2. Rate limit
            if self.rate_limiter is not None:
                client_id = client_identifier(request)
                allowed, _ = self.rate_limiter.check(client_id)
                if not allowed:
                    error = RateLimited(self.rate_limiter.retry_after(client_id))
                    log_event(
                        logging.WARNING,
                        SystemEvent(
                            event="rate_limited",
                            message=f"Rate limit exceeded: {request.method} {path}",
                            component="gateway_security",
                            details={"client": client_id},
                        ),
                    )
                    return JSONResponse(
                        status_code=429,
                        content={"error": error.message},
                        headers={"Retry-After": str(math.ceil(error.retry_after_seconds))},
                    )

            # 3. Authentication (the /api index is public)
            if path != "/api":
                provided = extract_api_key(request.headers, request.query_params)
                if not validate_api_key(provided, self.api_keys):
                    log_event(
                        logging.WARNING,
                        SystemEvent(
                            event="unauthorized_request_rejected",
                            message=f"Rejected unauthorized request: {request.method} {path}",
                            component="gateway_security",
                        ),
                    )
                    return JSONResponse(status_code=401, content={"error": Unauthorized().message})

        response = await call_next(request)
        self._add_security_headers(response)
        return response

    def _add_security_headers(self, response: Response) -> None:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
        response.headers["Cache-Control"] = "no-store"
