"""MCP-style requests against a single server.

- POST /api/mcp - {method, params} with the server in X-MCP-Server

Supported methods: tools/list, tools/call.

Routes mounted at: /api/mcp
"""

from __future__ import annotations

__all__ = ["router"]

from typing import Any

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from mcpd_bridge.gateway.deps import TranslatorDep
from mcpd_bridge.gateway.errors import APIError, ErrorCode
from mcpd_bridge.gateway.routes.tools import tool_result_response
from mcpd_bridge.gateway.schemas import McpHttpRequest

router = APIRouter()


@router.post("", response_model=None)
async def mcp_request(
    body: McpHttpRequest,
    translator: TranslatorDep,
    x_mcp_server: str | None = Header(default=None),
) -> dict[str, Any] | JSONResponse:
    if not x_mcp_server:
        raise APIError(
            status_code=400,
            code=ErrorCode.MISSING_PARAMETER,
            message="X-MCP-Server header required",
        )

    if body.method == "tools/list":
        return {"tools": await translator.list_server_tools(x_mcp_server)}

    if body.method == "tools/call":
        name = body.params.get("name")
        if not name:
            raise APIError(
                status_code=400,
                code=ErrorCode.MISSING_PARAMETER,
                message="Tool name required",
            )
        arguments = body.params.get("arguments")
        result = await translator.invoke(x_mcp_server, name, arguments if isinstance(arguments, dict) else None)
        return tool_result_response(result)

    raise APIError(
        status_code=400,
        code=ErrorCode.UNKNOWN_METHOD,
        message=f"Unknown method: {body.method}",
        details={"method": body.method},
    )
