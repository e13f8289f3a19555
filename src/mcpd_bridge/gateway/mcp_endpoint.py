"""MCP-over-HTTP endpoint.

Speaks MCP's JSON-RPC 2.0 messages over plain HTTP POSTs so MCP clients
that support HTTP servers can connect without a stdio bridge:

- POST /mcp - Every daemon server, namespaced tool names (Unified)
- POST /partner/{partner}/{server}/mcp - One server, raw tool names
- GET /health - Liveness

Every JSON-RPC request gets an HTTP 200 reply carrying either a result or
a JSON-RPC error. Notifications (no "id") get an empty 202.
"""

from __future__ import annotations

__all__ = [
    "JSONRPC_INTERNAL_ERROR",
    "JSONRPC_INVALID_PARAMS",
    "JSONRPC_INVALID_REQUEST",
    "JSONRPC_METHOD_NOT_FOUND",
    "JSONRPC_PARSE_ERROR",
    "McpHttpHandler",
    "create_mcp_app",
]

import json
import logging
from typing import Any

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mcpd_bridge import __version__
from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.bridge.namespace import BridgeScope
from mcpd_bridge.bridge.translator import ProtocolTranslator
from mcpd_bridge.config import GatewayConfig
from mcpd_bridge.constants import MCP_PROTOCOL_VERSION
from mcpd_bridge.exceptions import McpdBridgeError
from mcpd_bridge.gateway.lifespan import client_lifespan
from mcpd_bridge.gateway.security import SecurityMiddleware
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.system_logger import log_event

JSONRPC_PARSE_ERROR = -32700
JSONRPC_INVALID_REQUEST = -32600
JSONRPC_METHOD_NOT_FOUND = -32601
JSONRPC_INVALID_PARAMS = -32602
JSONRPC_INTERNAL_ERROR = -32603

UNIFIED_SERVER_NAME = "mcpd-gateway"


def _error(request_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def _result(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


class _MethodNotFound(Exception):
    pass


class _InvalidParams(Exception):
    pass


class McpHttpHandler:
    """Dispatches JSON-RPC messages for one scope."""

    def __init__(self, translator: ProtocolTranslator) -> None:
        self._translator = translator

    async def handle(self, payload: Any, scope: BridgeScope) -> dict[str, Any] | None:
        """Handle one decoded JSON-RPC message.

        Args:
            payload: Decoded request body.
            scope: Unified, or Individual without namespacing for partner URLs.

        Returns:
            The JSON-RPC response, or None for a notification.
        """
        if not isinstance(payload, dict):
            return _error(None, JSONRPC_INVALID_REQUEST, "Invalid Request")

        request_id = payload.get("id")
        method = payload.get("method")
        params = payload.get("params") or {}
        if payload.get("jsonrpc") != "2.0" or not isinstance(method, str) or not isinstance(params, dict):
            return _error(request_id, JSONRPC_INVALID_REQUEST, "Invalid Request")

        try:
            result = await self._dispatch(method, params, scope)
        except _MethodNotFound:
            if "id" not in payload:
                return None
            return _error(request_id, JSONRPC_METHOD_NOT_FOUND, f"Method not found: {method}")
        except _InvalidParams as e:
            return _error(request_id, JSONRPC_INVALID_PARAMS, str(e))
        except McpdBridgeError as e:
            return _error(request_id, JSONRPC_INTERNAL_ERROR, e.message, {"code": e.code})
        except Exception as e:
            log_event(
                logging.ERROR,
                SystemEvent(
                    event="mcp_request_failed",
                    message=f"Unhandled error in {method}: {e}",
                    component="mcp_endpoint",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
            return _error(request_id, JSONRPC_INTERNAL_ERROR, "Internal error", str(e))

        if "id" not in payload:
            return None
        return _result(request_id, result)

    async def _dispatch(self, method: str, params: dict[str, Any], scope: BridgeScope) -> Any:
        if method == "initialize":
            return {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {"tools": {}, "resources": {}, "prompts": {}},
                "serverInfo": {
                    "name": scope.server_name if scope.target_server else UNIFIED_SERVER_NAME,
                    "version": __version__,
                },
            }
        if method in ("initialized", "notifications/initialized"):
            return {}
        if method == "tools/list":
            return {"tools": await self._list_tools(scope)}
        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str) or not name:
                raise _InvalidParams("Tool name required")
            arguments = params.get("arguments")
            result = await self._translator.call_tool(
                name, arguments if isinstance(arguments, dict) else None, scope
            )
            return result.to_mcp()
        if method == "resources/list":
            return {"resources": []}
        if method == "prompts/list":
            return {"prompts": []}
        raise _MethodNotFound(method)

    async def _list_tools(self, scope: BridgeScope) -> list[dict[str, Any]]:
        try:
            tools = await self._translator.list_tools(scope)
        except McpdBridgeError as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="list_tools_failed",
                    message=f"Failed to list tools: {e}",
                    component="mcp_endpoint",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"scope": scope.key},
                ),
            )
            return []
        return [tool.to_mcp() for tool in tools]


async def _read_payload(request: Request) -> tuple[Any, dict[str, Any] | None]:
    """Decode the body; the second element is a parse-error response."""
    body = await request.body()
    try:
        return json.loads(body), None
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, _error(None, JSONRPC_PARSE_ERROR, "Parse error")


def _respond(response: dict[str, Any] | None) -> Response:
    if response is None:
        return Response(status_code=202)
    return JSONResponse(content=response)


router = APIRouter()


@router.post("/mcp")
async def unified_mcp(request: Request) -> Response:
    payload, parse_error = await _read_payload(request)
    if parse_error is not None:
        return _respond(parse_error)
    handler: McpHttpHandler = request.app.state.mcp_handler
    return _respond(await handler.handle(payload, BridgeScope.unified()))


@router.post("/partner/{partner}/{server}/mcp")
async def partner_mcp(partner: str, server: str, request: Request) -> Response:
    """Single-server endpoint; the partner segment is accepted and ignored."""
    payload, parse_error = await _read_payload(request)
    if parse_error is not None:
        return _respond(parse_error)
    handler: McpHttpHandler = request.app.state.mcp_handler
    return _respond(await handler.handle(payload, BridgeScope.individual(server, namespacing=False)))


@router.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "healthy", "mcp": True}


def create_mcp_app(config: GatewayConfig, client: BackendClient | None = None) -> FastAPI:
    """Create the MCP-over-HTTP application.

    Args:
        config: Gateway configuration (mcpd URL, CORS, size limit).
        client: Daemon client to use. When None, one is created from config
            and closed on shutdown.

    Returns:
        Configured FastAPI application.
    """
    owned = client is None
    if client is None:
        client = BackendClient(
            config.mcpd_url,
            api_key=config.mcpd_api_key,
            timeout_seconds=config.request_timeout_seconds,
        )

    app = FastAPI(
        title="mcpd MCP-over-HTTP",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=client_lifespan(client, owned),
    )

    translator = ProtocolTranslator(client)
    app.state.config = config
    app.state.translator = translator
    app.state.mcp_handler = McpHttpHandler(translator)

    # No /api paths here, so the middleware applies only the size limit and headers
    app.add_middleware(
        SecurityMiddleware,
        api_keys=config.api_keys,
        rate_limiter=None,
        max_request_bytes=config.max_request_bytes,
    )
    if config.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    app.include_router(router)
    return app
