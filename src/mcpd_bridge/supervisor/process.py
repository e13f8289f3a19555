"""Process spawning for the daemon supervisor.

The supervisor never touches asyncio.subprocess directly; it goes through a
ProcessSpawner so tests can substitute scripted fake processes.

Protocols:
    DaemonProcess:  a running daemon (pid, stderr, wait, terminate, kill)
    ProcessSpawner: starts the long-lived daemon and runs short commands
                    (`mcpd add`, `mcpd search`, `pkill`)
"""

from __future__ import annotations

__all__ = [
    "AsyncioDaemonProcess",
    "AsyncioProcessSpawner",
    "CommandResult",
    "DaemonProcess",
    "ProcessSpawner",
]

import asyncio
import logging
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mcpd_bridge.exceptions import DaemonSpawnError
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.system_logger import log_event

# Bound for short-lived helper commands (mcpd add/remove/search, pkill)
COMMAND_TIMEOUT_SECONDS = 60.0

_STDERR_CHUNK_BYTES = 4096


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a short-lived command."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""


class DaemonProcess(Protocol):
    """A spawned daemon process."""

    @property
    def pid(self) -> int: ...

    @property
    def returncode(self) -> int | None: ...

    async def read_stderr(self) -> bytes:
        """Next chunk of stderr output; b"" at end of stream."""
        ...

    async def wait(self) -> int: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


class ProcessSpawner(Protocol):
    """Creates daemon processes and runs helper commands."""

    async def spawn(self, args: Sequence[str], *, cwd: Path, env: Mapping[str, str]) -> DaemonProcess:
        """Start a long-lived process with stderr captured.

        Raises:
            DaemonSpawnError: If the OS refuses to create the process.
        """
        ...

    async def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        """Run a command to completion.

        Raises:
            FileNotFoundError: If the executable does not exist.
        """
        ...


class AsyncioDaemonProcess:
    """DaemonProcess backed by asyncio.subprocess.Process."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def read_stderr(self) -> bytes:
        if self._process.stderr is None:
            return b""
        return await self._process.stderr.read(_STDERR_CHUNK_BYTES)

    async def wait(self) -> int:
        return await self._process.wait()

    def terminate(self) -> None:
        try:
            self._process.terminate()
        except ProcessLookupError:
            pass  # Already exited

    def kill(self) -> None:
        try:
            self._process.kill()
        except ProcessLookupError:
            pass  # Already exited


class AsyncioProcessSpawner:
    """ProcessSpawner using asyncio subprocesses."""

    async def spawn(self, args: Sequence[str], *, cwd: Path, env: Mapping[str, str]) -> DaemonProcess:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd),
                env=dict(env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise DaemonSpawnError(f"Failed to spawn daemon: {e}") from e

        log_event(
            logging.INFO,
            SystemEvent(
                event="daemon_spawned",
                message=f"Daemon process spawned, pid: {process.pid}",
                component="supervisor",
                details={"args": list(args)},
            ),
        )
        return AsyncioDaemonProcess(process)

    async def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=COMMAND_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            process.kill()
            stdout, stderr = await process.communicate()
            return CommandResult(
                exit_code=process.returncode if process.returncode is not None else -1,
                stdout=stdout.decode(errors="replace"),
                stderr=f"Command timed out after {COMMAND_TIMEOUT_SECONDS:g} seconds",
            )
        return CommandResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
