"""HTTP gateway: REST, WebSocket and MCP-over-HTTP access to the daemon."""

from __future__ import annotations

from mcpd_bridge.gateway.mcp_endpoint import McpHttpHandler, create_mcp_app
from mcpd_bridge.gateway.rate_limiter import ClientRateLimiter
from mcpd_bridge.gateway.server import create_gateway_app

__all__ = [
    "ClientRateLimiter",
    "McpHttpHandler",
    "create_gateway_app",
    "create_mcp_app",
]
