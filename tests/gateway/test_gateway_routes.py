"""Integration tests for the REST gateway routes.

Requests go through the full app (security middleware, error handlers)
with the daemon replaced by FakeMcpd.
"""

from __future__ import annotations

from fastapi.testclient import TestClient


class TestMetaRoutes:
    """Tests for /health and /api."""

    def test_health_is_public(self, gateway_client: TestClient) -> None:
        response = gateway_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "mcpd": "http://mcpd.test"}

    def test_api_index_is_public(self, gateway_client: TestClient) -> None:
        response = gateway_client.get("/api")

        assert response.status_code == 200
        body = response.json()
        assert body["version"] == "1.0.0"
        assert body["endpoints"]["tools"]["call"] == "POST /api/tools/call"
        assert body["endpoints"]["websocket"]["connect"] == "ws://localhost:3000/ws"

    def test_security_headers(self, gateway_client: TestClient) -> None:
        response = gateway_client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
        assert response.headers["Cache-Control"] == "no-store"


class TestServersRoutes:
    """Tests for /api/servers."""

    def test_list_servers_passes_daemon_reply_through(self, api: TestClient) -> None:
        response = api.get("/api/servers")

        assert response.status_code == 200
        assert response.json() == [{"name": "filesystem"}, {"name": "github"}]

    def test_get_server(self, api: TestClient) -> None:
        response = api.get("/api/servers/github")

        assert response.json() == {"name": "github"}

    def test_get_unknown_server(self, api: TestClient) -> None:
        """Given an unknown server, returns a structured 404."""
        response = api.get("/api/servers/nope")

        assert response.status_code == 404
        assert response.json() == {
            "detail": {
                "code": "SERVER_NOT_FOUND",
                "message": "Server 'nope' not found in mcpd",
                "details": {"server": "nope"},
            }
        }

    def test_server_tools_use_raw_names(self, api: TestClient) -> None:
        response = api.get("/api/servers/filesystem/tools")

        assert [t["name"] for t in response.json()["tools"]] == ["read_file", "write_file"]

    def test_call_tool_direct(self, api: TestClient, fake_mcpd) -> None:
        """The request body is passed as the tool's arguments."""
        response = api.post("/api/servers/filesystem/tools/read_file/call", json={"path": "/tmp/test.txt"})

        assert response.status_code == 200
        assert response.json() == {"content": [{"type": "text", "text": "ok"}]}
        assert fake_mcpd.calls == [("filesystem", "read_file", {"arguments": {"path": "/tmp/test.txt"}})]

    def test_call_tool_direct_without_body(self, api: TestClient, fake_mcpd) -> None:
        response = api.post("/api/servers/github/tools/create_issue/call")

        assert response.status_code == 200
        assert fake_mcpd.calls[0][2] == {"arguments": {}}

    def test_failed_call_is_502(self, api: TestClient) -> None:
        """Given a call that fails, returns the error result with HTTP 502."""
        response = api.post("/api/servers/nope/tools/x/call", json={})

        assert response.status_code == 502
        assert response.json() == {
            "content": [{"type": "text", "text": "Error: Server 'nope' not found in mcpd"}],
            "isError": True,
        }

    def test_daemon_down_is_502(self, api: TestClient, fake_mcpd) -> None:
        fake_mcpd.down = True

        response = api.get("/api/servers")

        assert response.status_code == 502
        assert response.json()["detail"]["code"] == "UPSTREAM_ERROR"


class TestToolsRoutes:
    """Tests for /api/tools."""

    def test_list_tools(self, api: TestClient) -> None:
        response = api.get("/api/tools")

        tools = response.json()["tools"]
        assert len(tools) == 3
        assert tools[0] == {
            "name": "read_file",
            "description": "Read a file",
            "inputSchema": {"type": "object", "properties": {"path": {"type": "string"}}},
            "server": "filesystem",
            "fullName": "filesystem__read_file",
        }

    def test_call(self, api: TestClient, fake_mcpd) -> None:
        fake_mcpd.call_results[("github", "create_issue")] = {"number": 7}

        response = api.post(
            "/api/tools/call", json={"server": "github", "tool": "create_issue", "params": {"title": "Bug"}}
        )

        assert response.status_code == 200
        assert response.json()["content"][0]["text"] == '{\n  "number": 7\n}'
        assert fake_mcpd.calls == [("github", "create_issue", {"arguments": {"title": "Bug"}})]

    def test_call_requires_server_and_tool(self, api: TestClient) -> None:
        response = api.post("/api/tools/call", json={"server": "github"})

        assert response.status_code == 400
        assert response.json()["detail"] == {
            "code": "MISSING_PARAMETER",
            "message": "Server and tool are required",
        }

    def test_call_with_invalid_body(self, api: TestClient) -> None:
        response = api.post("/api/tools/call", json={"server": "github", "tool": "x", "params": "nope"})

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


class TestMcpRoute:
    """Tests for /api/mcp."""

    def test_requires_server_header(self, api: TestClient) -> None:
        response = api.post("/api/mcp", json={"method": "tools/list"})

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "X-MCP-Server header required"

    def test_tools_list(self, api: TestClient) -> None:
        response = api.post("/api/mcp", json={"method": "tools/list"}, headers={"X-MCP-Server": "github"})

        assert response.json() == {
            "tools": [
                {
                    "name": "create_issue",
                    "description": "Create an issue",
                    "inputSchema": {"type": "object", "properties": {}},
                }
            ]
        }

    def test_tools_call(self, api: TestClient, fake_mcpd) -> None:
        response = api.post(
            "/api/mcp",
            json={"method": "tools/call", "params": {"name": "create_issue", "arguments": {"title": "Bug"}}},
            headers={"X-MCP-Server": "github"},
        )

        assert response.status_code == 200
        assert fake_mcpd.calls == [("github", "create_issue", {"arguments": {"title": "Bug"}})]

    def test_tools_call_requires_name(self, api: TestClient) -> None:
        response = api.post(
            "/api/mcp", json={"method": "tools/call", "params": {}}, headers={"X-MCP-Server": "github"}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Tool name required"

    def test_unknown_method(self, api: TestClient) -> None:
        response = api.post("/api/mcp", json={"method": "prompts/get"}, headers={"X-MCP-Server": "github"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "UNKNOWN_METHOD"
        assert response.json()["detail"]["message"] == "Unknown method: prompts/get"


def test_unknown_route_is_structured_404(api: TestClient) -> None:
    response = api.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"


def test_upstream_error_status_is_reported(api: TestClient, fake_mcpd) -> None:
    """A daemon error status is surfaced in the error details."""
    fake_mcpd.failing_servers.add("github")

    response = api.get("/api/servers/github/tools")

    assert response.status_code == 502
    assert response.json()["detail"]["details"] == {"backend_status": 500}
