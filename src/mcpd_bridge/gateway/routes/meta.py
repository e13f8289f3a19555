"""Public gateway endpoints.

- GET /health - Liveness and the daemon URL the gateway points at
- GET /api - Endpoint index
"""

from __future__ import annotations

__all__ = ["router"]

from typing import Any

from fastapi import APIRouter

from mcpd_bridge.gateway.deps import ConfigDep
from mcpd_bridge.gateway.schemas import GatewayHealthResponse

router = APIRouter()

API_INDEX_VERSION = "1.0.0"


@router.get("/health")
async def health(config: ConfigDep) -> GatewayHealthResponse:
    return GatewayHealthResponse(mcpd=config.mcpd_url)


@router.get("/api")
async def api_index(config: ConfigDep) -> dict[str, Any]:
    """Describe the gateway's endpoints and how to authenticate."""
    return {
        "version": API_INDEX_VERSION,
        "endpoints": {
            "servers": {
                "list": "GET /api/servers",
                "get": "GET /api/servers/:name",
                "tools": "GET /api/servers/:name/tools",
            },
            "tools": {
                "list": "GET /api/tools",
                "call": "POST /api/tools/call",
                "callDirect": "POST /api/servers/:server/tools/:tool/call",
            },
            "mcp": {
                "call": "POST /api/mcp",
                "header": "X-MCP-Server: <server>",
            },
            "websocket": {
                "connect": f"ws://localhost:{config.port}/ws",
                "protocol": "Send JSON messages with {type, server, tool, params}",
            },
        },
        "authentication": "Use X-API-Key header or Authorization: Bearer <key>",
    }
