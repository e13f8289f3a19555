"""FastAPI application for the HTTP gateway.

Exposes the daemon's servers and tools to HTTP and WebSocket clients:
- Meta (/health, /api) - public
- Servers API (/api/servers) - list, inspect, per-server tools and calls
- Tools API (/api/tools) - Unified catalog and the flexible call endpoint
- MCP API (/api/mcp) - MCP-style methods against one server
- WebSocket (/ws) - authenticated request/reply channel

Security:
- Shared API keys for /api/* (X-API-Key, Bearer token or ?apiKey=)
- Sliding-window rate limit per client on /api and /api/*
- Request size limit and security response headers
- Optional permissive CORS (ENABLE_CORS)

Usage:
    The mcpd-http-gateway command serves this app alongside the
    MCP-over-HTTP app (see mcp_endpoint.py). For development:
        uvicorn mcpd_bridge.gateway.server:create_gateway_app --factory --port 3000
"""

from __future__ import annotations

__all__ = ["create_gateway_app"]

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mcpd_bridge import __version__
from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.bridge.translator import ProtocolTranslator
from mcpd_bridge.config import GatewayConfig, load_gateway_config
from mcpd_bridge.constants import BACKEND_API_KEY_HEADER
from mcpd_bridge.gateway.errors import register_exception_handlers
from mcpd_bridge.gateway.lifespan import client_lifespan
from mcpd_bridge.gateway.rate_limiter import ClientRateLimiter
from mcpd_bridge.gateway.routes import mcp, meta, servers, tools
from mcpd_bridge.gateway.security import SecurityMiddleware
from mcpd_bridge.gateway.websocket import router as websocket_router


def create_gateway_app(config: GatewayConfig | None = None, client: BackendClient | None = None) -> FastAPI:
    """Create the gateway application with all routes.

    Args:
        config: Gateway configuration. Loaded from the environment when None.
        client: Daemon client to use. When None, one is created from config
            and closed on shutdown.

    Returns:
        Configured FastAPI application.
    """
    config = config or load_gateway_config()
    owned = client is None
    if client is None:
        client = BackendClient(
            config.mcpd_url,
            api_key=config.mcpd_api_key,
            timeout_seconds=config.request_timeout_seconds,
        )

    app = FastAPI(
        title="mcpd HTTP Gateway",
        description="REST and WebSocket access to mcpd-managed MCP servers",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=client_lifespan(client, owned),
    )

    app.state.config = config
    app.state.translator = ProtocolTranslator(client)
    app.state.rate_limiter = ClientRateLimiter(
        max_requests=config.rate_limit_requests,
        window_seconds=config.rate_limit_window_seconds,
    )

    # Security middleware is added before CORS so preflight replies get CORS headers
    app.add_middleware(
        SecurityMiddleware,
        api_keys=config.api_keys,
        rate_limiter=app.state.rate_limiter,
        max_request_bytes=config.max_request_bytes,
    )
    if config.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", BACKEND_API_KEY_HEADER, "X-MCP-Server", "X-MCP-Tool"],
        )

    register_exception_handlers(app)

    app.include_router(meta.router, tags=["meta"])
    app.include_router(servers.router, prefix="/api/servers", tags=["servers"])
    app.include_router(tools.router, prefix="/api/tools", tags=["tools"])
    app.include_router(mcp.router, prefix="/api/mcp", tags=["mcp"])
    app.include_router(websocket_router)

    return app
