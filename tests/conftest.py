"""Shared fixtures for mcpd-bridge tests.

FakeMcpd stands in for the daemon's HTTP API behind an httpx.MockTransport,
so clients, translators and gateway apps run against a scripted daemon
without any network.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.bridge.translator import ProtocolTranslator

FAKE_MCPD_URL = "http://mcpd.test"


class FakeMcpd:
    """Scripted mcpd API.

    Attributes:
        servers: Server name -> tool definitions returned by /servers/{name}/tools.
        call_results: (server, tool) -> reply body. A str is sent as text,
            an httpx.Response is returned as-is, anything else as JSON.
        server_entries: When set, sent by /servers instead of one {"name": ...}
            object per server.
        failing_servers: Servers whose tool listing returns HTTP 500.
        down: When True every request fails with a connection error.
        calls: (server, tool, body) for every tool call received.
        requests: Every request received.
    """

    def __init__(self, servers: dict[str, list[dict[str, Any]]]) -> None:
        self.servers = servers
        self.call_results: dict[tuple[str, str], Any] = {}
        self.server_entries: list[Any] | None = None
        self.failing_servers: set[str] = set()
        self.down = False
        self.calls: list[tuple[str, str, Any]] = []
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("Connection refused", request=request)

        raw_path = request.url.raw_path.decode().split("?", 1)[0]
        assert raw_path.startswith("/api/v1/")
        parts = [unquote(p) for p in raw_path[len("/api/v1/") :].split("/")]

        if parts in (["health"], ["health", "servers"]):
            return httpx.Response(200, json={"status": "ok"})

        if parts == ["servers"]:
            if self.server_entries is not None:
                return httpx.Response(200, json=self.server_entries)
            return httpx.Response(200, json=[{"name": name} for name in self.servers])

        if len(parts) == 3 and parts[0] == "servers" and parts[2] == "tools":
            server = parts[1]
            if server in self.failing_servers:
                return httpx.Response(500, json={"error": "tool server crashed"})
            if server not in self.servers:
                return httpx.Response(404, json={"error": "server not found"})
            return httpx.Response(200, json={"tools": self.servers[server]})

        if len(parts) == 5 and parts[0] == "servers" and parts[2] == "tools" and parts[4] == "call":
            server, tool = parts[1], parts[3]
            if server not in self.servers:
                return httpx.Response(404, json={"error": "server not found"})
            self.calls.append((server, tool, json.loads(request.content)))
            result = self.call_results.get((server, tool), {"content": [{"type": "text", "text": "ok"}]})
            if isinstance(result, httpx.Response):
                return result
            if isinstance(result, str):
                return httpx.Response(200, text=result)
            return httpx.Response(200, json=result)

        return httpx.Response(404, json={"error": "no route"})


@pytest.fixture
def fake_mcpd() -> FakeMcpd:
    """Daemon with a filesystem server (two tools) and a github server (one tool)."""
    return FakeMcpd(
        {
            "filesystem": [
                {
                    "name": "read_file",
                    "description": "Read a file",
                    "inputSchema": {"type": "object", "properties": {"path": {"type": "string"}}},
                },
                {"name": "write_file"},
            ],
            "github": [{"name": "create_issue", "description": "Create an issue"}],
        }
    )


@pytest.fixture
def make_client(fake_mcpd: FakeMcpd):
    """Factory for BackendClients wired to the fake daemon."""

    def _make(api_key: str | None = None) -> BackendClient:
        return BackendClient(FAKE_MCPD_URL, api_key=api_key, transport=httpx.MockTransport(fake_mcpd.handler))

    return _make


@pytest.fixture
async def backend_client(make_client) -> AsyncIterator[BackendClient]:
    client = make_client()
    yield client
    await client.aclose()


@pytest.fixture
def translator(backend_client: BackendClient) -> ProtocolTranslator:
    return ProtocolTranslator(backend_client)
