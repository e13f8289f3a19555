"""mcpd-http-gateway: REST/WebSocket gateway plus MCP-over-HTTP endpoint.

Both applications run in one event loop and share one daemon client:

    http://HOST:PORT/api      REST API (X-API-Key required on /api/*)
    ws://HOST:PORT/ws         WebSocket
    http://HOST:MCP_PORT/mcp  MCP-over-HTTP (all servers)
    http://HOST:MCP_PORT/partner/mcpd/{server}/mcp  (one server)

Environment:
    PORT, MCP_PORT, HOST, MCPD_URL, MCPD_API_KEY, API_KEY, ENABLE_CORS
"""

from __future__ import annotations

__all__ = ["main", "serve_gateway"]

import asyncio
import logging
import signal
import sys

import click
import uvicorn

from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.config import GatewayConfig, load_gateway_config
from mcpd_bridge.exceptions import BackendCallFailed, McpdBridgeError
from mcpd_bridge.gateway.mcp_endpoint import create_mcp_app
from mcpd_bridge.gateway.server import create_gateway_app
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.system_logger import log_event, quiet_http_loggers

from .errors import exit_with_error
from .styling import style_label, style_success, style_warning


async def serve_gateway(config: GatewayConfig) -> None:
    """Serve the gateway and MCP-over-HTTP apps until SIGINT/SIGTERM."""
    quiet_http_loggers()
    for logger_name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    async with BackendClient(
        config.mcpd_url,
        api_key=config.mcpd_api_key,
        timeout_seconds=config.request_timeout_seconds,
    ) as client:
        try:
            await client.ping()
            click.echo(style_success(f"Connected to mcpd at {config.mcpd_url}"), err=True)
        except BackendCallFailed as e:
            click.echo(style_warning(f"Could not connect to mcpd at {config.mcpd_url}"), err=True)
            click.echo("  Make sure mcpd is running", err=True)
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="mcpd_unreachable",
                    message=f"Could not connect to mcpd at {config.mcpd_url}",
                    component="gateway",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )

        servers = [
            uvicorn.Server(
                uvicorn.Config(create_gateway_app(config, client), host=config.host, port=config.port, log_config=None)
            ),
            uvicorn.Server(
                uvicorn.Config(create_mcp_app(config, client), host=config.host, port=config.mcp_port, log_config=None)
            ),
        ]

        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown_event.set)

        _print_banner(config)
        # _serve() skips uvicorn's own signal handlers; shutdown_event owns SIGINT/SIGTERM
        serve_tasks = [asyncio.create_task(server._serve()) for server in servers]
        stop_waiter = asyncio.create_task(shutdown_event.wait())
        try:
            # A server that fails to bind finishes early; take everything down with it
            await asyncio.wait([stop_waiter, *serve_tasks], return_when=asyncio.FIRST_COMPLETED)
        finally:
            for server in servers:
                server.should_exit = True
            stop_waiter.cancel()
            await asyncio.gather(*serve_tasks, stop_waiter, return_exceptions=True)
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

        log_event(
            logging.INFO,
            SystemEvent(event="gateway_stopped", message="Gateway stopped", component="gateway"),
        )


def _print_banner(config: GatewayConfig) -> None:
    host = "localhost" if config.host in ("0.0.0.0", "::") else config.host
    click.echo(style_label("mcpd HTTP Gateway") + f" http://{host}:{config.port}", err=True)
    click.echo(f"  API documentation: http://{host}:{config.port}/api", err=True)
    click.echo(f"  WebSocket: ws://{host}:{config.port}/ws", err=True)
    click.echo(style_label("MCP-over-HTTP") + f" http://{host}:{config.mcp_port}/mcp", err=True)
    click.echo(f"  Specific server: http://{host}:{config.mcp_port}/partner/mcpd/{{server}}/mcp", err=True)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--host", default=None, help="Interface to bind (env: HOST, default: 0.0.0.0)")
@click.option("--port", "-p", type=int, default=None, help="Gateway port (env: PORT, default: 3000)")
@click.option("--mcp-port", type=int, default=None, help="MCP-over-HTTP port (env: MCP_PORT, default: 3001)")
def main(host: str | None, port: int | None, mcp_port: int | None) -> None:
    """mcpd HTTP Gateway - REST, WebSocket and MCP-over-HTTP access to mcpd."""
    try:
        config = load_gateway_config(host=host, port=port, mcp_port=mcp_port)
        asyncio.run(serve_gateway(config))
    except McpdBridgeError as e:
        exit_with_error(e.message)
    except KeyboardInterrupt:
        sys.exit(0)
