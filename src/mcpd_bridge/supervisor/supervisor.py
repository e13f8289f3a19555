"""Lifecycle supervision for the mcpd daemon.

DaemonSupervisor starts, detects, reconciles and stops one mcpd process per
data directory. start() resolves into exactly one outcome by racing four
signals:

    port conflict   stderr reports "address already in use": kill our spawn,
                    probe whatever holds the port, adopt it if healthy
    exit            non-zero exit during startup (signal kills are ignored)
    probe           health check after the probe delay
    deadline        absolute timeout, always decisive

Server configuration changes are delegated to the mcpd CLI (`mcpd add`,
`mcpd remove`) and followed by a restart when the daemon was running.
"""

from __future__ import annotations

__all__ = [
    "DaemonSupervisor",
    "PendingStart",
]

import asyncio
import json
import logging
import shutil
import tomllib
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.config import SupervisorConfig
from mcpd_bridge.constants import (
    DAEMON_PROCESS_PATTERN,
    INITIAL_DAEMON_CONFIG,
    PORT_IN_USE_PATTERN,
    STDERR_DRAIN_TIMEOUT_SECONDS,
)
from mcpd_bridge.exceptions import (
    DaemonExitedNonZero,
    DaemonStartTimeout,
    DaemonStopError,
    McpdBridgeError,
    PortConflict,
    ServerCommandFailed,
)
from mcpd_bridge.models import DaemonHandle, DaemonState, ServerDescriptor, SystemEvent
from mcpd_bridge.supervisor.binary import Which, build_daemon_env, daemon_args, resolve_daemon_binary
from mcpd_bridge.supervisor.process import AsyncioProcessSpawner, DaemonProcess, ProcessSpawner
from mcpd_bridge.supervisor.settle import first_settlement
from mcpd_bridge.telemetry.system_logger import log_event

# Captured stderr is bounded; only the tail matters for error messages
_STDERR_MAX_CHUNKS = 256


def _command_failure(action: str, name: str, stderr: str) -> str:
    message = f"Failed to {action} server {name}"
    if stderr.strip():
        message += f": {stderr.strip()}"
    return message


@dataclass(slots=True)
class PendingStart:
    """In-flight state of one start() attempt.

    The stderr pump keeps draining the pipe for the life of the process so
    the daemon never blocks on a full pipe after startup.
    """

    process: DaemonProcess
    stderr_chunks: deque[str] = field(default_factory=lambda: deque(maxlen=_STDERR_MAX_CHUNKS))
    port_conflict: asyncio.Event = field(default_factory=asyncio.Event)
    pump: asyncio.Task[None] | None = None

    @property
    def stderr(self) -> str:
        return "".join(self.stderr_chunks)

    async def pump_stderr(self) -> None:
        while True:
            chunk = await self.process.read_stderr()
            if not chunk:
                return
            text = chunk.decode(errors="replace")
            self.stderr_chunks.append(text)
            if PORT_IN_USE_PATTERN in self.stderr:
                self.port_conflict.set()


class DaemonSupervisor:
    """Owns the mcpd daemon process for one data directory.

    Usage:
        supervisor = DaemonSupervisor(load_supervisor_config())
        handle = await supervisor.start()
        print(handle.to_status())
        await supervisor.stop()
    """

    def __init__(
        self,
        config: SupervisorConfig,
        client: BackendClient | None = None,
        spawner: ProcessSpawner | None = None,
        which: Which = shutil.which,
    ) -> None:
        """Initialize the supervisor.

        Args:
            config: Supervisor configuration.
            client: Backend client used for health probes.
            spawner: Process spawner (tests inject fakes).
            which: PATH lookup used for binary and node resolution.
        """
        self.config = config
        self.client = client or BackendClient(config.api_base_url, api_key=config.api_key)
        self._spawner: ProcessSpawner = spawner or AsyncioProcessSpawner()
        self._which = which
        self._state = DaemonState.STOPPED
        self._pending: PendingStart | None = None
        self._lifecycle_lock = asyncio.Lock()

    @property
    def state(self) -> DaemonState:
        return self._state

    @property
    def process(self) -> DaemonProcess | None:
        """The daemon process this supervisor spawned, if still tracked."""
        return self._pending.process if self._pending else None

    def _owned_pid(self) -> int | None:
        process = self.process
        if process is not None and process.returncode is None:
            return process.pid
        return None

    def _handle(self, state: DaemonState, pid: int | None = None) -> DaemonHandle:
        return DaemonHandle(
            state=state,
            pid=pid,
            api_base_url=self.config.api_base_url,
            log_path=self.config.log_path,
            config_path=self.config.config_path,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    # =========================================================================
    # Status
    # =========================================================================

    async def status(self) -> DaemonHandle:
        """Probe the daemon's health without touching any process.

        Returns:
            Handle in RUNNING state if the daemon answered; otherwise the
            supervisor's own view (STARTING/FAILED) or STOPPED.
        """
        if await self.client.health():
            return self._handle(DaemonState.RUNNING, self._owned_pid())
        if self._state in (DaemonState.STARTING, DaemonState.FAILED):
            return self._handle(self._state)
        return self._handle(DaemonState.STOPPED)

    # =========================================================================
    # Start
    # =========================================================================

    async def start(self) -> DaemonHandle:
        """Start the daemon, or adopt one that is already running.

        Concurrent calls are serialized; a caller that waited on another
        start() sees the running daemon and returns without spawning.

        Returns:
            Handle in RUNNING state.

        Raises:
            BinaryNotFound: No mcpd executable.
            DaemonSpawnError: The OS refused to spawn it.
            PortConflict: Port taken by something that is not a healthy daemon.
            DaemonExitedNonZero: Daemon exited with an error during startup.
            DaemonStartTimeout: Daemon did not become healthy in time.
        """
        async with self._lifecycle_lock:
            current = await self.status()
            if current.running:
                self._state = DaemonState.RUNNING
                log_event(
                    logging.INFO,
                    SystemEvent(
                        event="daemon_already_running",
                        message="Daemon already running, connecting to existing instance",
                        component="supervisor",
                    ),
                )
                return current

            # A tracked process that no longer answers is replaced
            await self._discard_pending()

            self._state = DaemonState.STARTING
            try:
                handle = await self._spawn_and_settle()
            except BaseException as e:
                self._state = DaemonState.FAILED
                await self._discard_pending()
                if isinstance(e, McpdBridgeError):
                    log_event(
                        logging.ERROR,
                        SystemEvent(
                            event="daemon_start_failed",
                            message=str(e),
                            component="supervisor",
                            error_type=type(e).__name__,
                            error_message=str(e),
                        ),
                    )
                raise

            self._state = DaemonState.RUNNING
            log_event(
                logging.INFO,
                SystemEvent(
                    event="daemon_started",
                    message=f"Daemon running at {handle.api_base_url}",
                    component="supervisor",
                    details={"pid": handle.pid},
                ),
            )
            return handle

    def _prepare_data_dir(self) -> None:
        self.config.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.config.config_path.exists():
            self.config.config_path.write_text(INITIAL_DAEMON_CONFIG, encoding="utf-8")

    async def _spawn_and_settle(self) -> DaemonHandle:
        binary = resolve_daemon_binary(self.config.resources_dir, which=self._which)
        self._prepare_data_dir()

        args = [str(binary), *daemon_args(self.config.log_path, self.config.config_path)]
        process = await self._spawner.spawn(
            args,
            cwd=self.config.data_dir,
            env=build_daemon_env(which=self._which),
        )
        pending = PendingStart(process)
        pending.pump = asyncio.create_task(pending.pump_stderr())
        self._pending = pending

        handle = await first_settlement(
            self._watch_port_conflict(pending),
            self._watch_exit(pending),
            self._watch_probe(pending),
            self._watch_deadline(pending),
        )
        if pending.port_conflict.is_set():
            await self._discard_pending()
        return handle

    async def _watch_port_conflict(self, pending: PendingStart) -> DaemonHandle:
        await pending.port_conflict.wait()
        log_event(
            logging.WARNING,
            SystemEvent(
                event="daemon_port_conflict",
                message="Daemon port already in use; probing existing instance",
                component="supervisor",
            ),
        )
        pending.process.kill()
        await asyncio.sleep(self.config.port_conflict_probe_delay_seconds)

        if await self.client.health():
            # The existing daemon is not ours, so the handle carries no pid
            return self._handle(DaemonState.RUNNING)
        raise PortConflict(self.config.api_base_url)

    async def _watch_exit(self, pending: PendingStart) -> DaemonHandle | None:
        exit_code = await pending.process.wait()
        if pending.pump is not None:
            # Let the pump catch the last stderr output before judging the exit
            await asyncio.wait({pending.pump}, timeout=STDERR_DRAIN_TIMEOUT_SECONDS)

        if pending.port_conflict.is_set():
            return None
        if exit_code > 0:
            raise DaemonExitedNonZero(exit_code, pending.stderr)
        # Zero or killed by a signal: not decisive on its own
        return None

    async def _watch_probe(self, pending: PendingStart) -> DaemonHandle | None:
        await asyncio.sleep(self.config.probe_delay_seconds)
        if await self.client.health():
            return self._handle(DaemonState.RUNNING, self._owned_pid())
        if not pending.stderr:
            raise DaemonStartTimeout(
                self.config.probe_delay_seconds,
                detail=f"Daemon failed to start - not running after {self.config.probe_delay_seconds:g} seconds",
            )
        return None

    async def _watch_deadline(self, pending: PendingStart) -> DaemonHandle:
        await asyncio.sleep(self.config.absolute_timeout_seconds)
        raise DaemonStartTimeout(self.config.absolute_timeout_seconds, pending.stderr)

    async def _discard_pending(self) -> None:
        """Kill a tracked process and stop draining its stderr."""
        pending, self._pending = self._pending, None
        if pending is None:
            return
        if pending.process.returncode is None:
            pending.process.kill()
            try:
                await asyncio.wait_for(pending.process.wait(), timeout=self.config.stop_timeout_seconds)
            except asyncio.TimeoutError:
                log_event(
                    logging.WARNING,
                    SystemEvent(
                        event="daemon_kill_timeout",
                        message=f"Daemon pid {pending.process.pid} did not exit after kill",
                        component="supervisor",
                    ),
                )
        if pending.pump is not None and not pending.pump.done():
            pending.pump.cancel()
            await asyncio.gather(pending.pump, return_exceptions=True)

    # =========================================================================
    # Stop / restart
    # =========================================================================

    async def stop(self) -> None:
        """Stop the daemon.

        A daemon this supervisor spawned gets SIGTERM, then SIGKILL after
        the stop timeout. Otherwise `pkill -f "mcpd daemon"` is used; "no
        process matched" counts as success.

        A stop issued while start() is in flight waits for that start to
        settle, then stops whatever it left running.

        Raises:
            DaemonStopError: If the termination signal could not be delivered.
        """
        async with self._lifecycle_lock:
            pending = self._pending
            if pending is not None and pending.process.returncode is None:
                await self._stop_owned(pending)
            else:
                await self._stop_external()

            await self._discard_pending()
            self._state = DaemonState.STOPPED
        log_event(logging.INFO, SystemEvent(event="daemon_stopped", message="Daemon stopped", component="supervisor"))

    async def _stop_owned(self, pending: PendingStart) -> None:
        process = pending.process
        try:
            process.terminate()
        except OSError as e:
            raise DaemonStopError(f"Failed to signal daemon pid {process.pid}: {e}") from e

        try:
            await asyncio.wait_for(process.wait(), timeout=self.config.stop_timeout_seconds)
        except asyncio.TimeoutError:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="daemon_stop_timeout",
                    message=f"Daemon did not exit within {self.config.stop_timeout_seconds:g}s, killing",
                    component="supervisor",
                ),
            )
            process.kill()
            await process.wait()

    async def _stop_external(self) -> None:
        try:
            result = await self._spawner.run(["pkill", "-f", DAEMON_PROCESS_PATTERN])
        except FileNotFoundError:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="pkill_unavailable",
                    message="pkill not available; cannot stop a daemon this process did not start",
                    component="supervisor",
                ),
            )
            return

        # pkill: 0 = processes signalled, 1 = nothing matched
        if result.exit_code not in (0, 1):
            raise DaemonStopError(f"Failed to stop daemon, exit code: {result.exit_code}")

    async def restart(self) -> DaemonHandle:
        """Stop, wait for the port to be released, start."""
        await self.stop()
        await asyncio.sleep(self.config.restart_grace_seconds)
        return await self.start()

    # =========================================================================
    # Server configuration
    # =========================================================================

    async def _run_mcpd(self, *args: str) -> tuple[int, str, str]:
        binary = resolve_daemon_binary(self.config.resources_dir, which=self._which)
        self._prepare_data_dir()
        result = await self._spawner.run(
            [str(binary), *args, f"--config-file={self.config.config_path}"],
            cwd=self.config.data_dir,
        )
        return result.exit_code, result.stdout, result.stderr

    async def _restart_if_running(self) -> None:
        if (await self.status()).running:
            log_event(
                logging.INFO,
                SystemEvent(
                    event="daemon_reload",
                    message="Restarting daemon to reload configuration",
                    component="supervisor",
                ),
            )
            await self.restart()

    async def add_server(self, name: str, restart: bool = True) -> None:
        """Add a server from the registry with `mcpd add`.

        Args:
            name: Registry name of the server.
            restart: Restart the daemon afterwards if it is running.

        Raises:
            ServerCommandFailed: If mcpd exits non-zero.
        """
        exit_code, _, stderr = await self._run_mcpd("add", name)
        if exit_code != 0:
            raise ServerCommandFailed(_command_failure("add", name, stderr), exit_code)
        log_event(
            logging.INFO,
            SystemEvent(event="server_added", message=f"Added server {name}", component="supervisor", server=name),
        )
        if restart:
            await self._restart_if_running()

    async def remove_server(self, name: str, restart: bool = True) -> None:
        """Remove a server with `mcpd remove`.

        Args:
            name: Configured server name.
            restart: Restart the daemon afterwards if it is running.

        Raises:
            ServerCommandFailed: If mcpd exits non-zero.
        """
        exit_code, _, stderr = await self._run_mcpd("remove", name)
        if exit_code != 0:
            raise ServerCommandFailed(_command_failure("remove", name, stderr), exit_code)
        log_event(
            logging.INFO,
            SystemEvent(event="server_removed", message=f"Removed server {name}", component="supervisor", server=name),
        )
        if restart:
            await self._restart_if_running()

    async def search_servers(self, query: str = "*") -> list[Any]:
        """Search the mcpd registry.

        Returns:
            Parsed `mcpd search --format json` output, or [] on any failure.
        """
        try:
            exit_code, stdout, _ = await self._run_mcpd("search", query, "--format", "json")
        except (McpdBridgeError, OSError) as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="server_search_failed",
                    message=f"Server search failed: {e}",
                    component="supervisor",
                    error_type=type(e).__name__,
                ),
            )
            return []
        if exit_code != 0:
            return []
        try:
            results = json.loads(stdout)
        except json.JSONDecodeError:
            return []
        return results if isinstance(results, list) else []

    def configured_servers(self) -> list[ServerDescriptor]:
        """Servers listed in the daemon's TOML config ([] if none)."""
        path = self.config.config_path
        if not path.exists():
            return []
        with path.open("rb") as f:
            data = tomllib.load(f)
        return [
            ServerDescriptor.model_validate(entry)
            for entry in data.get("servers", [])
            if isinstance(entry, dict) and entry.get("name")
        ]

    def get_logs(self, lines: int = 100) -> list[str]:
        """Last `lines` lines of the daemon log ([] if absent)."""
        path = self.config.log_path
        if not path.exists() or lines <= 0:
            return []
        with path.open("r", encoding="utf-8", errors="replace") as f:
            tail = deque(f, maxlen=lines)
        return [line.rstrip("\n") for line in tail]
