"""Servers command group for mcpd-manager.

- list: Servers known to the running daemon
- add: Add a server from the registry (mcpd add)
- remove: Remove a configured server (mcpd remove)
- search: Search the registry
- configured: Servers in the daemon's config file
- tools: Tools exposed by one server
"""

from __future__ import annotations

__all__ = ["servers"]

import json
import tomllib
from typing import Any

import click

from mcpd_bridge.exceptions import McpdBridgeError
from mcpd_bridge.models import ServerDescriptor

from ..context import CliContext, pass_cli_context
from ..errors import exit_with_error, run_or_exit
from ..styling import style_dim, style_label, style_success, style_warning


@click.group()
def servers() -> None:
    """Manage mcpd servers."""
    pass


def _echo_descriptors(descriptors: list[ServerDescriptor], empty_message: str) -> None:
    if not descriptors:
        click.echo(style_dim(empty_message))
        return
    click.echo(style_label("Servers") + f" {len(descriptors)}")
    for server in descriptors:
        line = f"  {server.name}"
        if server.package:
            line += style_dim(f"  ({server.package})")
        click.echo(line)


@servers.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output the daemon's reply as JSON")
@pass_cli_context
def list_servers(ctx: CliContext, as_json: bool) -> None:
    """List servers known to the running daemon."""

    async def _run() -> tuple[Any, list[ServerDescriptor]]:
        translator = ctx.translator()
        try:
            if as_json:
                return await translator.list_servers(), []
            return None, await translator.list_server_descriptors()
        finally:
            await translator.client.aclose()

    raw, descriptors = run_or_exit(_run())
    if as_json:
        click.echo(json.dumps(raw, indent=2))
        return
    _echo_descriptors(descriptors, "No servers running.")


@servers.command("add")
@click.argument("name")
@pass_cli_context
def add(ctx: CliContext, name: str) -> None:
    """Add server NAME from the mcpd registry."""

    async def _run() -> bool:
        supervisor = ctx.supervisor()
        try:
            await supervisor.add_server(name, restart=False)
            return (await supervisor.status()).running
        finally:
            await supervisor.aclose()

    running = run_or_exit(_run())
    click.echo(style_success(f"Added server {name}"))
    if running:
        click.echo(style_warning("Restart the daemon to load the change: mcpd-manager daemon restart"))


@servers.command("remove")
@click.argument("name")
@pass_cli_context
def remove(ctx: CliContext, name: str) -> None:
    """Remove configured server NAME."""

    async def _run() -> bool:
        supervisor = ctx.supervisor()
        try:
            await supervisor.remove_server(name, restart=False)
            return (await supervisor.status()).running
        finally:
            await supervisor.aclose()

    running = run_or_exit(_run())
    click.echo(style_success(f"Removed server {name}"))
    if running:
        click.echo(style_warning("Restart the daemon to load the change: mcpd-manager daemon restart"))


@servers.command("search")
@click.argument("query", default="*")
@pass_cli_context
def search(ctx: CliContext, query: str) -> None:
    """Search the mcpd registry (all servers when QUERY is omitted)."""

    async def _run() -> list[Any]:
        supervisor = ctx.supervisor()
        try:
            return await supervisor.search_servers(query)
        finally:
            await supervisor.aclose()

    results = run_or_exit(_run())
    if not results:
        click.echo(style_dim("No matching servers."))
        return
    for entry in results:
        if isinstance(entry, dict):
            name = entry.get("name") or entry.get("id") or "?"
            description = entry.get("description")
            click.echo(f"  {name}" + (style_dim(f"  {description}") if description else ""))
        else:
            click.echo(f"  {entry}")


@servers.command("configured")
@pass_cli_context
def configured(ctx: CliContext) -> None:
    """List servers in the daemon's config file."""
    try:
        supervisor = ctx.supervisor()
        descriptors = supervisor.configured_servers()
    except McpdBridgeError as e:
        exit_with_error(e.message)
    except tomllib.TOMLDecodeError as e:
        exit_with_error(f"Invalid daemon config {supervisor.config.config_path}: {e}")
    _echo_descriptors(descriptors, f"No servers configured in {supervisor.config.config_path}.")


@servers.command("tools")
@click.argument("name")
@pass_cli_context
def server_tools(ctx: CliContext, name: str) -> None:
    """List the tools of server NAME."""

    async def _run() -> list[dict[str, Any]]:
        translator = ctx.translator()
        try:
            return await translator.list_server_tools(name)
        finally:
            await translator.client.aclose()

    tools = run_or_exit(_run())
    if not tools:
        click.echo(style_dim(f"Server {name} exposes no tools."))
        return
    click.echo(style_label(f"Tools on {name}") + f" {len(tools)}")
    for tool in tools:
        click.echo(f"  {tool['name']}" + style_dim(f"  {tool['description']}"))
