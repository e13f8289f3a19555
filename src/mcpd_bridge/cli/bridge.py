"""mcpd-bridge-server: expose mcpd-managed servers as one stdio MCP server.

Modes:
    Unified     (default) every server, tools named "server__tool"
    Individual  --server NAME, tools namespaced unless --no-namespace

Environment:
    MCPD_URL      URL of the mcpd daemon (default: http://localhost:8090)
    MCPD_API_KEY  Optional API key for mcpd authentication

stdout carries only MCP JSON-RPC frames; diagnostics go to stderr.
"""

from __future__ import annotations

__all__ = ["main"]

import asyncio
import sys

import click

from mcpd_bridge.bridge.stdio import run_stdio_bridge
from mcpd_bridge.config import load_bridge_config
from mcpd_bridge.exceptions import McpdBridgeError
from mcpd_bridge.telemetry.system_logger import quiet_http_loggers

from .errors import exit_with_error


class BridgeCommand(click.Command):
    """Command that prints its usage examples verbatim after the options."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add usage examples after the options section."""
        formatter.write(
            """
Examples:
  # Unified mode - expose all servers with namespaced tools
  mcpd-bridge-server

  # Individual mode - expose only the filesystem server
  mcpd-bridge-server --server filesystem

  # Individual mode without namespacing
  mcpd-bridge-server --server github --no-namespace
"""
        )


@click.command(
    cls=BridgeCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--server", "-s", "target_server", default=None, help="Proxy only the specified server (individual mode)")
@click.option("--no-namespace", is_flag=True, help="Disable tool namespacing in individual mode")
def main(target_server: str | None, no_namespace: bool) -> None:
    """mcpd Bridge Server - MCP adapter for mcpd."""
    quiet_http_loggers()
    try:
        config = load_bridge_config(target_server=target_server, namespacing=not no_namespace)
        asyncio.run(run_stdio_bridge(config))
    except McpdBridgeError as e:
        exit_with_error(e.message)
    except KeyboardInterrupt:
        sys.exit(0)
