"""Tunnel-runner processes: CLI calls, config files and supervision."""

from .cli import TunnelRunnerCLI
from .config_file import RunnerConfig, RunnerConfigStore, validate_runner_config
from .handle import PopenHandle, ProcessHandle
from .models import Connection, Tunnel, TunnelStatus
from .supervisor import ManagedProcess, ProcessSupervisor

__all__ = [
    "TunnelRunnerCLI",
    "RunnerConfig",
    "RunnerConfigStore",
    "validate_runner_config",
    "PopenHandle",
    "ProcessHandle",
    "Connection",
    "Tunnel",
    "TunnelStatus",
    "ManagedProcess",
    "ProcessSupervisor",
]
