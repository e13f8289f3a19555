"""mcpd-manager: operator CLI for the mcpd daemon.

Commands:
    daemon   - Daemon lifecycle (start, stop, status, restart, logs)
    servers  - Server management (list, add, remove, search, configured, tools)
    tools    - Tool invocation (call)

Subcommand help:
    mcpd-manager COMMAND -h    Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli"]

import sys
from pathlib import Path

import click

from mcpd_bridge import __version__

from .commands.daemon import daemon
from .commands.servers import servers
from .commands.tools import tools
from .context import CliContext


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Daemon working directory (env: MCPD_DATA_DIR)",
)
@click.option("--mcpd-url", default=None, help="Daemon API URL (env: MCPD_URL, default: http://localhost:8090)")
@click.pass_context
def cli(ctx: click.Context, version: bool, data_dir: Path | None, mcpd_url: str | None) -> None:
    """mcpd-manager: run the mcpd daemon and manage its servers."""
    if version:
        click.echo(f"mcpd-manager {__version__}")
        sys.exit(0)
    ctx.obj = CliContext(data_dir=data_dir, mcpd_url=mcpd_url)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(daemon)
cli.add_command(servers)
cli.add_command(tools)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
