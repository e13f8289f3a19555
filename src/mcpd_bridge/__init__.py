"""mcpd-bridge: supervisor and protocol bridges for the mcpd daemon.

Packages:
    backend     - HTTP client for the daemon's API
    bridge      - Namespacing, tool catalog translation, stdio MCP bridge
    supervisor  - Daemon process lifecycle (start, stop, status, restart)
    gateway     - REST, WebSocket and MCP-over-HTTP gateway
    cli         - Command line entry points
"""

__version__ = "0.1.0"
