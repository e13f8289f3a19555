"""Tools command group for mcpd-manager.

- call: Invoke a tool on a server and print its result
"""

from __future__ import annotations

__all__ = ["tools"]

import json
import sys
from typing import Any

import click

from mcpd_bridge.bridge.results import NormalizedResult

from ..context import CliContext, pass_cli_context
from ..errors import run_or_exit
from ..styling import style_error


@click.group()
def tools() -> None:
    """Invoke mcpd tools."""
    pass


def _parse_arguments(ctx: click.Context, param: click.Parameter, value: str | None) -> dict[str, Any]:
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise click.BadParameter("must be a JSON object")
    return parsed


@tools.command("call")
@click.argument("server")
@click.argument("tool")
@click.option(
    "--args",
    "arguments",
    callback=_parse_arguments,
    default=None,
    help='Tool arguments as a JSON object, e.g. \'{"path": "/tmp/test.txt"}\'',
)
@click.option("--json", "as_json", is_flag=True, help="Print the full MCP result as JSON")
@pass_cli_context
def call(ctx: CliContext, server: str, tool: str, arguments: dict[str, Any], as_json: bool) -> None:
    """Call TOOL on SERVER.

    Exits 1 when the tool reports an error.
    """

    async def _run() -> NormalizedResult:
        translator = ctx.translator()
        try:
            return await translator.invoke(server, tool, arguments)
        finally:
            await translator.client.aclose()

    result = run_or_exit(_run())
    if as_json:
        click.echo(json.dumps(result.to_mcp(), indent=2))
    else:
        for block in result.content:
            if block.get("type") == "text":
                text = block.get("text", "")
                click.echo(style_error(text) if result.is_error else text, err=result.is_error)
            else:
                click.echo(json.dumps(block, indent=2))
    if result.is_error:
        sys.exit(1)
