"""Request and response models for the HTTP gateway."""

from __future__ import annotations

__all__ = [
    "GatewayHealthResponse",
    "McpHttpRequest",
    "ToolCallRequest",
    "WebSocketMessage",
]

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GatewayHealthResponse(BaseModel):
    """GET /health reply."""

    status: str = "healthy"
    mcpd: str


class ToolCallRequest(BaseModel):
    """Body of POST /api/tools/call.

    server and tool are optional at the model level so a missing field
    produces the gateway's MISSING_PARAMETER error rather than a 422.
    """

    server: str | None = None
    tool: str | None = None
    params: dict[str, Any] | None = None

    model_config = ConfigDict(extra="ignore")


class McpHttpRequest(BaseModel):
    """Body of POST /api/mcp."""

    method: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class WebSocketMessage(BaseModel):
    """A client message on /ws.

    Attributes:
        type: Message type (auth, servers.list, tools.list, tools.call).
        id: Client correlation id, echoed in the reply.
        api_key: Shared secret (auth messages only).
        server: Target server.
        tool: Raw tool name (tools.call).
        params: Tool arguments (tools.call).
    """

    type: str | None = None
    id: Any = None
    api_key: str | None = Field(default=None, alias="apiKey")
    server: str | None = None
    tool: str | None = None
    params: dict[str, Any] | None = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
