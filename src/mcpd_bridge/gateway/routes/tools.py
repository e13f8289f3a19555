"""Tool endpoints.

- GET /api/tools - Tools from every server, each tagged with its server
  and namespaced fullName
- POST /api/tools/call - Call a tool given {server, tool, params}

Routes mounted at: /api/tools
"""

from __future__ import annotations

__all__ = ["catalog_entry", "router", "tool_result_response"]

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from mcpd_bridge.bridge.namespace import BridgeScope
from mcpd_bridge.bridge.results import NormalizedResult
from mcpd_bridge.gateway.deps import TranslatorDep
from mcpd_bridge.gateway.errors import APIError, ErrorCode
from mcpd_bridge.gateway.schemas import ToolCallRequest
from mcpd_bridge.models import ExternalTool

router = APIRouter()


def catalog_entry(entry: ExternalTool) -> dict[str, Any]:
    """A Unified catalog tool with its raw name, server and fullName."""
    return {
        "name": entry.tool.name,
        "description": entry.description,
        "inputSchema": entry.input_schema,
        "server": entry.server,
        "fullName": entry.external_name,
    }


def tool_result_response(result: NormalizedResult) -> JSONResponse:
    """HTTP reply for a tool call: 200 on success, 502 if the result is an error."""
    return JSONResponse(status_code=502 if result.is_error else 200, content=result.to_mcp())


@router.get("")
async def list_tools(translator: TranslatorDep) -> dict[str, Any]:
    tools = await translator.list_tools(BridgeScope.unified())
    return {"tools": [catalog_entry(entry) for entry in tools]}


@router.post("/call")
async def call_tool(body: ToolCallRequest, translator: TranslatorDep) -> JSONResponse:
    """Call a tool.

    Raises:
        APIError: 400 if server or tool is missing.
    """
    if not body.server or not body.tool:
        raise APIError(
            status_code=400,
            code=ErrorCode.MISSING_PARAMETER,
            message="Server and tool are required",
        )
    result = await translator.invoke(body.server, body.tool, body.params)
    return tool_result_response(result)
