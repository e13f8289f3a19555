"""Structured API error handling for the gateway.

This module provides:
- ErrorCode enum with the gateway's error codes
- APIError exception class for structured error responses
- Exception handlers for consistent error formatting, including a mapping
  from McpdBridgeError subclasses to HTTP status codes

Response format:
    {
        "detail": {
            "code": "SERVER_NOT_FOUND",
            "message": "Server 'github' not found in mcpd",
            "details": {"server": "github"}
        }
    }
"""

from __future__ import annotations

__all__ = [
    "APIError",
    "ErrorCode",
    "api_error_handler",
    "bridge_error_handler",
    "http_exception_handler",
    "register_exception_handlers",
    "validation_error_handler",
]

from enum import Enum
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mcpd_bridge.exceptions import (
    BackendCallFailed,
    InvalidToolNameFormat,
    McpdBridgeError,
    RateLimited,
    ServerNotFound,
    Unauthorized,
)


class ErrorCode(str, Enum):
    """API error codes for programmatic handling."""

    # Client errors (400, 401, 404, 422, 429)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"
    SERVER_NOT_FOUND = "SERVER_NOT_FOUND"
    INVALID_TOOL_NAME_FORMAT = "INVALID_TOOL_NAME_FORMAT"
    MISSING_PARAMETER = "MISSING_PARAMETER"
    UNKNOWN_METHOD = "UNKNOWN_METHOD"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Upstream / internal errors (500, 502, 503)
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    TOOL_CALL_FAILED = "TOOL_CALL_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class APIError(HTTPException):
    """Structured API error with error code.

    Attributes:
        status_code: HTTP status code.
        code: Error code from ErrorCode enum.
        error_message: Human-readable error message.
        error_details: Optional contextual details.
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.error_message = message
        self.error_details = details

        detail: dict[str, Any] = {
            "code": code.value,
            "message": message,
        }
        if details:
            detail["details"] = details

        super().__init__(status_code=status_code, detail=detail)


# McpdBridgeError subclass -> (HTTP status, code)
_BRIDGE_ERROR_STATUS: tuple[tuple[type[McpdBridgeError], int, ErrorCode], ...] = (
    (ServerNotFound, 404, ErrorCode.SERVER_NOT_FOUND),
    (InvalidToolNameFormat, 400, ErrorCode.INVALID_TOOL_NAME_FORMAT),
    (BackendCallFailed, 502, ErrorCode.UPSTREAM_ERROR),
    (Unauthorized, 401, ErrorCode.AUTH_REQUIRED),
    (RateLimited, 429, ErrorCode.RATE_LIMITED),
)


def api_error_from_bridge_error(exc: McpdBridgeError) -> APIError:
    """Convert a bridge/supervisor exception to an APIError."""
    for exc_type, status_code, code in _BRIDGE_ERROR_STATUS:
        if isinstance(exc, exc_type):
            details: dict[str, Any] | None = None
            if isinstance(exc, ServerNotFound):
                details = {"server": exc.server}
            elif isinstance(exc, BackendCallFailed) and exc.status_code is not None:
                details = {"backend_status": exc.status_code}
            return APIError(status_code=status_code, code=code, message=exc.message, details=details)
    return APIError(status_code=500, code=ErrorCode.INTERNAL_ERROR, message=exc.message, details={"error": exc.code})


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def bridge_error_handler(request: Request, exc: McpdBridgeError) -> JSONResponse:
    """Map McpdBridgeError subclasses raised in routes to structured errors."""
    api_error = api_error_from_bridge_error(exc)
    return JSONResponse(status_code=api_error.status_code, content={"detail": api_error.detail})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with the structured format."""
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    loc = first_error.get("loc", [])
    msg = first_error.get("msg", "Validation error")

    if len(errors) == 1:
        field_name = ".".join(str(part) for part in loc if part != "body")
        message = f"{field_name}: {msg}" if field_name else msg
    else:
        message = f"{len(errors)} validation errors"

    detail: dict[str, Any] = {
        "code": ErrorCode.VALIDATION_ERROR.value,
        "message": message,
        "validation_errors": [
            {"loc": list(e.get("loc", [])), "msg": e.get("msg", ""), "type": e.get("type", "")} for e in errors
        ],
    }
    return JSONResponse(status_code=422, content={"detail": detail})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap plain HTTPException details in the structured format."""
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    detail: dict[str, Any] = {
        "code": _status_to_error_code(exc.status_code).value,
        "message": str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
    }
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


def _status_to_error_code(status_code: int) -> ErrorCode:
    mapping = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.AUTH_REQUIRED,
        404: ErrorCode.NOT_FOUND,
        429: ErrorCode.RATE_LIMITED,
        500: ErrorCode.INTERNAL_ERROR,
        502: ErrorCode.UPSTREAM_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }
    return mapping.get(status_code, ErrorCode.INTERNAL_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all structured error handlers on an app."""
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(McpdBridgeError, bridge_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
