"""Command-line entry points.

- mcpd-bridge-server: stdio MCP bridge (bridge.py)
- mcpd-http-gateway: HTTP/WebSocket gateway and MCP-over-HTTP endpoint (gateway.py)
- mcpd-manager: daemon and server management (main.py)
"""
