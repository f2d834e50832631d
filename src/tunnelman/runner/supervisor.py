"""Lifecycle management for locally spawned tunnel-runner processes."""

import os
import re
import signal
import subprocess
import threading
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import psutil
from pydantic import BaseModel, ConfigDict, Field

from ..common.exceptions import (
    BinaryNotFoundError,
    ConflictError,
    NotFoundError,
    OperationCancelledError,
    ProcessError,
)
from ..common.logging import get_logger
from .config_file import RunnerConfig, RunnerConfigStore, validate_runner_config
from .handle import PopenHandle, ProcessHandle
from .models import TunnelStatus

logger = get_logger(__name__)

DEFAULT_STOP_TIMEOUT = 10.0
MONITOR_POLL_INTERVAL = 0.5

Spawner = Callable[[Sequence[str]], ProcessHandle]
ProcessLister = Callable[..., Iterable[psutil.Process]]


class ManagedProcess(BaseModel):
    """Registry entry for one supervised tunnel-runner process.

    Entries are immutable; the supervisor replaces them on every transition.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    pid: int
    start_time: datetime = Field(default_factory=datetime.now)
    status: TunnelStatus = TunnelStatus.ACTIVE
    command: list[str] = Field(default_factory=list)
    config: RunnerConfig | None = None
    url: str | None = None
    handle: Any = Field(default=None, exclude=True, repr=False)

    @property
    def uptime(self) -> timedelta:
        return datetime.now() - self.start_time

    @property
    def is_running(self) -> bool:
        """True while the OS process has not exited."""
        if self.handle is None:
            return False
        return self.handle.poll() is None

    def with_status(self, status: TunnelStatus) -> "ManagedProcess":
        return self.model_copy(update={"status": status})


class ProcessSupervisor:
    """Owns the registry of managed tunnel-runner processes.

    A single lock serializes every registry mutation, including the spawn or
    signal it guards. Each process gets one monitor thread that records its
    final status; nothing is restarted automatically.
    """

    def __init__(
        self,
        runner_binary: str = "cloudflared",
        config_store: RunnerConfigStore | None = None,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
        spawner: Spawner | None = None,
        process_lister: ProcessLister | None = None,
        monitor_interval: float = MONITOR_POLL_INTERVAL,
    ):
        """Initialize the supervisor.

        Args:
            runner_binary: Tunnel-runner executable name or path
            config_store: Where runner config files are written
            stop_timeout: Seconds to wait after SIGTERM before a forced kill
            spawner: Starts a command and returns its handle
            process_lister: Iterates OS processes for orphan reconciliation
            monitor_interval: Poll interval of the per-process monitor
        """
        self.runner_binary = runner_binary
        self.config_store = config_store or RunnerConfigStore(
            Path.home() / ".cloudflared"
        )
        self.stop_timeout = stop_timeout
        self.monitor_interval = monitor_interval
        self._spawner: Spawner = spawner or PopenHandle.spawn
        self._process_lister: ProcessLister = process_lister or psutil.process_iter
        self._lock = threading.RLock()
        self._processes: dict[str, ManagedProcess] = {}
        self._orphan_pattern = re.compile(
            rf"{re.escape(Path(runner_binary).name)}.*tunnel.*run"
        )

    def _build_command(
        self, name: str, config_path: Path | None, url: str | None
    ) -> list[str]:
        command = [self.runner_binary, "tunnel"]
        if config_path is not None:
            command += ["--config", str(config_path)]
        elif url:
            command += ["--url", url]
        return command + ["run", name]

    def start_managed(
        self,
        name: str,
        config: RunnerConfig | None = None,
        *,
        url: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ManagedProcess:
        """Spawn a tunnel runner for ``name`` and start monitoring it.

        With ``config`` the runner is pointed at a freshly written config
        file; otherwise ``url`` starts a quick tunnel.

        Args:
            name: Tunnel name, also the registry key
            config: Runner config to persist and run with
            url: Inline target URL for quick-tunnel mode
            cancel: Checked once before spawning; set means abort

        Returns:
            The new Active registry entry

        Raises:
            ConflictError: If ``name`` is already Active
            ValidationError: If ``config`` is malformed
            OperationCancelledError: If ``cancel`` was set before spawning
            ProcessError: If the process cannot be spawned
        """
        with self._lock:
            existing = self._processes.get(name)
            if existing is not None and existing.status == TunnelStatus.ACTIVE:
                raise ConflictError(
                    f"tunnel {name} is already running with PID {existing.pid}"
                )

            if config is not None:
                validate_runner_config(config)

            if cancel is not None and cancel.is_set():
                raise OperationCancelledError(f"start of tunnel {name} was cancelled")

            config_path = (
                self.config_store.save(name, config) if config is not None else None
            )
            command = self._build_command(name, config_path, url)

            try:
                handle = self._spawner(command)
            except FileNotFoundError as e:
                raise BinaryNotFoundError(
                    f"Tunnel runner binary not found: {self.runner_binary}"
                ) from e
            except OSError as e:
                raise ProcessError(f"failed to start tunnel: {e}") from e

            entry = ManagedProcess(
                name=name,
                pid=handle.pid,
                status=TunnelStatus.ACTIVE,
                command=command,
                config=config,
                url=url if config is None else None,
                handle=handle,
            )
            self._processes[name] = entry

            threading.Thread(
                target=self._monitor_and_reap,
                args=(entry,),
                name=f"tunnel-monitor-{name}",
                daemon=True,
            ).start()

        logger.info("Tunnel process started", name=name, pid=entry.pid)
        return entry

    def start_quick(self, name: str, url: str, **kwargs: Any) -> ManagedProcess:
        """Start a quick tunnel bound to ``url`` without a config file."""
        return self.start_managed(name, url=url, **kwargs)

    def _monitor_and_reap(self, entry: ManagedProcess) -> None:
        """Wait for the process to exit, then record Inactive or Error."""
        handle = entry.handle
        exit_code: int | None
        while True:
            try:
                exit_code = handle.wait(timeout=self.monitor_interval)
                break
            except subprocess.TimeoutExpired:
                continue
            except OSError as e:
                logger.error("Waiting on tunnel process failed", name=entry.name, error=str(e))
                exit_code = None
                break

        with self._lock:
            current = self._processes.get(entry.name)
            if current is None or current.handle is not handle:
                return
            if current.status != TunnelStatus.ACTIVE:
                return
            status = TunnelStatus.INACTIVE if exit_code == 0 else TunnelStatus.ERROR
            self._processes[entry.name] = current.with_status(status)

        logger.info(
            "Tunnel process exited",
            name=entry.name,
            pid=entry.pid,
            exit_code=exit_code,
            status=status.value,
        )

    def _stop_entry(self, entry: ManagedProcess) -> None:
        """SIGTERM, wait up to ``stop_timeout``, then force kill.

        The entry is marked Inactive whatever the outcome, once a handle exists.
        Caller must hold the lock.
        """
        handle = entry.handle
        if handle is None:
            raise ProcessError("process handle not available")

        logger.info("Stopping tunnel process", name=entry.name, pid=entry.pid)
        try:
            try:
                handle.signal(signal.SIGTERM)
            except OSError as e:
                raise ProcessError(f"failed to send SIGTERM: {e}") from e

            try:
                handle.wait(timeout=self.stop_timeout)
                logger.info("Tunnel process terminated gracefully", name=entry.name)
                return
            except subprocess.TimeoutExpired:
                logger.warning(
                    "Process did not terminate gracefully, force killing",
                    name=entry.name,
                    pid=entry.pid,
                )

            try:
                handle.force_kill()
            except OSError as e:
                logger.error("Failed to kill process", name=entry.name, pid=entry.pid)
                raise ProcessError(f"failed to kill process: {e}") from e

            try:
                handle.wait(timeout=self.stop_timeout)
            except subprocess.TimeoutExpired:
                logger.error("Process still alive after kill", name=entry.name, pid=entry.pid)
        finally:
            # Inactive even when the kill failed; the error still reaches the caller.
            self._processes[entry.name] = entry.with_status(TunnelStatus.INACTIVE)

    def stop(self, name: str) -> None:
        """Stop the process registered as ``name``; the entry is kept as Inactive.

        Raises:
            NotFoundError: If ``name`` is not registered
            ProcessError: If signalling or killing fails
        """
        with self._lock:
            entry = self._processes.get(name)
            if entry is None:
                raise NotFoundError(f"tunnel {name} is not running")
            self._stop_entry(entry)

    def restart(self, name: str) -> ManagedProcess:
        """Stop ``name``, drop its entry and start it again with the same config.

        Raises:
            NotFoundError: If ``name`` is not registered
            ProcessError: If the stop or the new spawn fails
        """
        with self._lock:
            entry = self._processes.get(name)
            if entry is None:
                raise NotFoundError(f"tunnel {name} is not being managed")

            config, url = entry.config, entry.url
            self._stop_entry(entry)
            del self._processes[name]
            logger.info("Restarting tunnel process", name=name)
            return self.start_managed(name, config, url=url)

    def delete(self, name: str) -> ManagedProcess:
        """Stop ``name`` if it is still running and remove its entry.

        Raises:
            NotFoundError: If ``name`` is not registered
        """
        with self._lock:
            entry = self._processes.get(name)
            if entry is None:
                raise NotFoundError(f"tunnel {name} is not being managed")
            try:
                if entry.is_running:
                    self._stop_entry(entry)
            finally:
                removed = self._processes.pop(name)
        return removed

    def stop_by_pid(self, pid: int) -> None:
        """Stop and remove the entry whose process id is ``pid``.

        Raises:
            NotFoundError: If no entry has ``pid``
        """
        with self._lock:
            entry = self.get_by_pid(pid)
            if entry is None:
                raise NotFoundError(f"no tunnel found with PID {pid}")
            self._stop_entry(entry)
            del self._processes[entry.name]

    def stop_all(self) -> None:
        """Stop every entry and clear the registry.

        Raises:
            ProcessError: Listing every entry that failed to stop
        """
        errors: list[str] = []
        with self._lock:
            for name, entry in list(self._processes.items()):
                try:
                    self._stop_entry(entry)
                except ProcessError as e:
                    errors.append(f"failed to stop {name}: {e}")
            self._processes.clear()

        if errors:
            raise ProcessError(f"errors stopping tunnels: {'; '.join(errors)}")

    def cleanup_dead(self) -> list[str]:
        """Drop entries whose process has exited; returns their names."""
        with self._lock:
            dead = [name for name, entry in self._processes.items() if not entry.is_running]
            for name in dead:
                del self._processes[name]
        if dead:
            logger.debug("Removed dead tunnel processes", names=dead)
        return dead

    def reconcile_orphans(self) -> list[int]:
        """SIGTERM runner processes that this supervisor does not own.

        Best effort: failures are logged and skipped.

        Returns:
            Process ids that were signalled
        """
        with self._lock:
            known = {entry.pid for entry in self._processes.values()}

        signalled = []
        for proc in self._process_lister(["pid", "cmdline"]):
            try:
                cmdline = " ".join(proc.info.get("cmdline") or [])
                if proc.pid in known or proc.pid == os.getpid():
                    continue
                if not self._orphan_pattern.search(cmdline):
                    continue
                proc.send_signal(signal.SIGTERM)
                signalled.append(proc.pid)
                logger.info("Signalled orphaned tunnel process", pid=proc.pid)
            except psutil.Error as e:
                logger.debug("Skipping orphan candidate", pid=proc.pid, error=str(e))
        return signalled

    def get(self, name: str) -> ManagedProcess | None:
        with self._lock:
            return self._processes.get(name)

    def get_by_pid(self, pid: int) -> ManagedProcess | None:
        with self._lock:
            for entry in self._processes.values():
                if entry.pid == pid:
                    return entry
        return None

    def status(self, name: str) -> TunnelStatus:
        """Registry status of ``name``; Inactive when unknown or already exited."""
        with self._lock:
            entry = self._processes.get(name)
            if entry is None:
                return TunnelStatus.INACTIVE
            if entry.status == TunnelStatus.ACTIVE and not entry.is_running:
                return TunnelStatus.INACTIVE
            return entry.status

    def running(self) -> dict[str, ManagedProcess]:
        with self._lock:
            return {
                name: entry for name, entry in self._processes.items() if entry.is_running
            }

    def snapshot(self) -> dict[str, ManagedProcess]:
        """Read-only copy of the registry for reporting."""
        with self._lock:
            return dict(self._processes)
