"""WebSocket endpoint for the HTTP gateway.

Protocol (JSON text frames):

    Client                                  Gateway
    ------                                  -------
    connect /ws?apiKey=<key>        ->      (authenticated immediately)
    {"type": "auth", "apiKey": k}   ->      {"type": "auth", "status": "success"}
    {"type": "servers.list"}        ->      {"type": "servers.list", "data": ...}
    {"type": "tools.list",
     "server": "github"}            ->      {"type": "tools.list", "server": ..., "data": {"tools": [...]}}
    {"type": "tools.call", "server": s,
     "tool": t, "params": {...}}    ->      {"type": "tools.result", "data": {content, isError?}}

Any message received before authentication other than a valid auth message
gets {"type": "error", "error": "Unauthorized"} and the socket is closed
with 1008 (policy violation). Once authenticated, errors are reported as
{"type": "error", "error": ...} and the connection stays open. Binary frames
are answered with an error like any other unreadable message. Every reply
echoes the client's "id" when one was sent.
"""

from __future__ import annotations

__all__ = ["router"]

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from mcpd_bridge.bridge.namespace import BridgeScope
from mcpd_bridge.bridge.translator import ProtocolTranslator
from mcpd_bridge.exceptions import McpdBridgeError, Unauthorized
from mcpd_bridge.gateway.routes.tools import catalog_entry
from mcpd_bridge.gateway.schemas import WebSocketMessage
from mcpd_bridge.gateway.security import validate_api_key
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.system_logger import log_event

router = APIRouter()


class _ProtocolError(Exception):
    """A client message the gateway cannot act on."""


async def _receive_text(websocket: WebSocket) -> str | None:
    """Next text frame; None for a binary frame."""
    frame = await websocket.receive()
    if frame["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(frame.get("code", status.WS_1000_NORMAL_CLOSURE))
    return frame.get("text")


def _parse_message(raw: str | None) -> WebSocketMessage:
    if raw is None:
        raise _ProtocolError("Binary frames are not supported")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise _ProtocolError(f"Invalid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise _ProtocolError("Message must be a JSON object")
    try:
        return WebSocketMessage.model_validate(data)
    except ValidationError as e:
        raise _ProtocolError(f"Invalid message: {e.errors()[0].get('msg', 'validation error')}") from e


def _reply(message: WebSocketMessage | None, payload: dict[str, Any]) -> dict[str, Any]:
    if message is not None and message.id is not None:
        payload["id"] = message.id
    return payload


async def _dispatch(message: WebSocketMessage, translator: ProtocolTranslator) -> dict[str, Any]:
    """Handle one authenticated message and build the reply payload."""
    if message.type == "servers.list":
        return {"type": "servers.list", "data": await translator.list_servers()}

    if message.type == "tools.list":
        if message.server:
            tools = await translator.list_server_tools(message.server)
            return {"type": "tools.list", "server": message.server, "data": {"tools": tools}}
        catalog = await translator.list_tools(BridgeScope.unified())
        return {"type": "tools.list", "data": {"tools": [catalog_entry(entry) for entry in catalog]}}

    if message.type == "tools.call":
        if not message.server or not message.tool:
            raise _ProtocolError("Server and tool are required")
        result = await translator.invoke(message.server, message.tool, message.params)
        return {"type": "tools.result", "data": result.to_mcp()}

    raise _ProtocolError(f"Unknown message type: {message.type}")


@router.websocket("/ws")
async def gateway_websocket(websocket: WebSocket) -> None:
    """Serve one WebSocket client until it disconnects."""
    api_keys = websocket.app.state.config.api_keys
    translator: ProtocolTranslator = websocket.app.state.translator

    await websocket.accept()
    authenticated = validate_api_key(websocket.query_params.get("apiKey"), api_keys)
    log_event(
        logging.INFO,
        SystemEvent(
            event="websocket_connected",
            message="WebSocket client connected",
            component="gateway_websocket",
            details={"authenticated": authenticated},
        ),
    )

    try:
        while True:
            raw = await _receive_text(websocket)

            if not authenticated:
                message: WebSocketMessage | None
                try:
                    message = _parse_message(raw)
                except _ProtocolError:
                    message = None
                if message is not None and message.type == "auth" and validate_api_key(message.api_key, api_keys):
                    authenticated = True
                    await websocket.send_json(_reply(message, {"type": "auth", "status": "success"}))
                    continue

                log_event(
                    logging.WARNING,
                    SystemEvent(
                        event="websocket_unauthorized",
                        message="Closing unauthenticated WebSocket connection",
                        component="gateway_websocket",
                    ),
                )
                await websocket.send_json(_reply(message, {"type": "error", "error": Unauthorized().message}))
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                return

            message = None
            try:
                message = _parse_message(raw)
                reply = await _dispatch(message, translator)
            except (_ProtocolError, McpdBridgeError) as e:
                reply = {"type": "error", "error": str(e)}
            await websocket.send_json(_reply(message, reply))
    except WebSocketDisconnect:
        log_event(
            logging.INFO,
            SystemEvent(
                event="websocket_disconnected",
                message="WebSocket client disconnected",
                component="gateway_websocket",
            ),
        )
