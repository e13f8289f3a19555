"""Server endpoints.

- GET /api/servers - Daemon server list (passed through as-is)
- GET /api/servers/{name} - One server entry
- GET /api/servers/{name}/tools - A server's tools with raw names
- POST /api/servers/{server}/tools/{tool}/call - Call a tool; body is the arguments

Routes mounted at: /api/servers
"""

from __future__ import annotations

__all__ = ["router"]

from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from mcpd_bridge.gateway.deps import TranslatorDep
from mcpd_bridge.gateway.routes.tools import tool_result_response

router = APIRouter()


@router.get("")
async def list_servers(translator: TranslatorDep) -> Any:
    return await translator.list_servers()


@router.get("/{name}")
async def get_server(name: str, translator: TranslatorDep) -> Any:
    """Get one server.

    Raises:
        ServerNotFound: Mapped to 404 by the bridge error handler.
    """
    return await translator.get_server(name)


@router.get("/{name}/tools")
async def list_server_tools(name: str, translator: TranslatorDep) -> dict[str, Any]:
    return {"tools": await translator.list_server_tools(name)}


@router.post("/{server}/tools/{tool}/call")
async def call_server_tool(
    server: str,
    tool: str,
    translator: TranslatorDep,
    arguments: dict[str, Any] | None = Body(default=None),
) -> JSONResponse:
    """Call a tool by server and raw tool name.

    Returns:
        The MCP-shaped result; HTTP 502 when the result is an error.
    """
    result = await translator.invoke(server, tool, arguments)
    return tool_result_response(result)
