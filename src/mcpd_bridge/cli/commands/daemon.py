"""Daemon command group for mcpd-manager.

- start: Start mcpd (or adopt a running instance) and supervise it
- stop: Stop mcpd
- status: Show whether mcpd answers its health check
- restart: Stop, then start and supervise
- logs: Show the tail of the daemon log

start and restart keep running in the foreground while they own the daemon
process; Ctrl+C stops it. A daemon started elsewhere is reported and left
running.
"""

from __future__ import annotations

__all__ = ["daemon"]

import asyncio
import json
import signal

import click

from mcpd_bridge.exceptions import McpdBridgeError
from mcpd_bridge.models import DaemonHandle
from mcpd_bridge.supervisor import DaemonSupervisor

from ..context import CliContext, pass_cli_context
from ..errors import exit_with_error, run_or_exit
from ..styling import style_dim, style_label, style_success, style_warning


@click.group()
def daemon() -> None:
    """mcpd daemon lifecycle commands."""
    pass


def _echo_handle(handle: DaemonHandle) -> None:
    click.echo(f"  API: {handle.api_base_url}")
    click.echo(f"  Log: {handle.log_path}")
    click.echo(f"  Config: {handle.config_path}")


async def _wait_for_interrupt() -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)
    try:
        await stop_event.wait()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


async def _supervise(supervisor: DaemonSupervisor, handle: DaemonHandle) -> None:
    """Report the started daemon; hold the foreground while we own it."""
    if handle.pid is None:
        click.echo(style_success("mcpd is already running"))
        _echo_handle(handle)
        return

    click.echo(style_success(f"mcpd started (pid: {handle.pid})"))
    _echo_handle(handle)
    click.echo()
    click.echo("Press Ctrl+C to stop")

    process = supervisor.process
    waiters = [asyncio.create_task(_wait_for_interrupt())]
    if process is not None:
        waiters.append(asyncio.create_task(process.wait()))
    done, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    if process is not None and process.returncode is not None:
        click.echo(style_warning(f"mcpd exited with code {process.returncode}"))
        return
    click.echo()
    click.echo("Stopping mcpd...")
    await supervisor.stop()
    click.echo(style_success("mcpd stopped"))


@daemon.command("start")
@pass_cli_context
def start(ctx: CliContext) -> None:
    """Start the mcpd daemon.

    Connects to an already running daemon instead of spawning a second one.
    """

    async def _run() -> None:
        supervisor = ctx.supervisor()
        try:
            click.echo(style_label("Starting mcpd"))
            handle = await supervisor.start()
            await _supervise(supervisor, handle)
        finally:
            await supervisor.aclose()

    run_or_exit(_run())


@daemon.command("stop")
@pass_cli_context
def stop(ctx: CliContext) -> None:
    """Stop the mcpd daemon."""

    async def _run() -> None:
        supervisor = ctx.supervisor()
        try:
            await supervisor.stop()
        finally:
            await supervisor.aclose()

    run_or_exit(_run())
    click.echo(style_success("mcpd stopped"))


@daemon.command("restart")
@pass_cli_context
def restart(ctx: CliContext) -> None:
    """Restart the mcpd daemon (reloads its configuration)."""

    async def _run() -> None:
        supervisor = ctx.supervisor()
        try:
            handle = await supervisor.restart()
            await _supervise(supervisor, handle)
        finally:
            await supervisor.aclose()

    run_or_exit(_run())


@daemon.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_cli_context
def status(ctx: CliContext, as_json: bool) -> None:
    """Show daemon status."""

    async def _run() -> DaemonHandle:
        supervisor = ctx.supervisor()
        try:
            return await supervisor.status()
        finally:
            await supervisor.aclose()

    handle = run_or_exit(_run())
    if as_json:
        click.echo(json.dumps(handle.to_status(), indent=2))
        return

    if handle.running:
        click.echo(style_success("mcpd is running"))
        _echo_handle(handle)
    else:
        click.echo(style_dim(f"mcpd is not running ({handle.state.value})"))
        click.echo(f"  Log: {handle.log_path}")


@daemon.command("logs")
@click.option("--lines", "-n", type=int, default=100, show_default=True, help="Number of lines to show")
@pass_cli_context
def logs(ctx: CliContext, lines: int) -> None:
    """Show the last lines of the daemon log."""
    try:
        supervisor = ctx.supervisor()
    except McpdBridgeError as e:
        exit_with_error(e.message)
    entries = supervisor.get_logs(lines)
    if not entries:
        click.echo(style_dim(f"No log output at {supervisor.config.log_path}"))
        return
    for line in entries:
        click.echo(line)
