"""Gateway route modules.

Route organization:
- meta: Health check and the /api endpoint index (public)
- servers: Daemon server list, single server, per-server tools and calls
- tools: Unified tool catalog and the flexible call endpoint
- mcp: MCP-style JSON requests against one server (/api/mcp)
"""

from . import mcp, meta, servers, tools

__all__ = [
    "mcp",
    "meta",
    "servers",
    "tools",
]
