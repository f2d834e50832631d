"""Subprocess boundary for one-shot tunnel-runner commands."""

import json
import shutil
import subprocess
from typing import Any

from pydantic import ValidationError as ModelValidationError

from ..common.exceptions import BinaryNotFoundError, ProcessError
from ..common.logging import get_logger
from .models import Tunnel

logger = get_logger(__name__)


class TunnelRunnerCLI:
    """Runs ``cloudflared tunnel ...`` commands and parses their JSON output."""

    def __init__(self, binary: str = "cloudflared"):
        self.binary = binary

    def is_installed(self) -> bool:
        return shutil.which(self.binary) is not None

    def _binary_path(self) -> str:
        """Find the runner binary in PATH.

        Raises:
            BinaryNotFoundError: If the binary is not installed
        """
        path = shutil.which(self.binary)
        if path is None:
            raise BinaryNotFoundError(
                f"Tunnel runner binary '{self.binary}' not found in system PATH. "
                "Install cloudflared and ensure it is available in your PATH."
            )
        return path

    def run(self, *args: str) -> str:
        """Run one command and return its combined stdout/stderr.

        Raises:
            BinaryNotFoundError: If the binary is not installed
            ProcessError: If the command cannot start or exits non-zero
        """
        command = [self._binary_path(), *args]
        logger.debug("Running tunnel runner command", args=list(args))
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as e:
            raise ProcessError(f"command failed to start: {self.binary} {args}: {e}") from e

        if completed.returncode != 0:
            logger.error(
                "Tunnel runner command failed",
                args=list(args),
                returncode=completed.returncode,
            )
            raise ProcessError(
                f"command failed: {self.binary} {list(args)}", output=completed.stdout
            )
        return completed.stdout

    def _run_json(self, *args: str) -> Any:
        output = self.run("tunnel", "--output", "json", *args)
        try:
            return json.loads(output)
        except ValueError as e:
            raise ProcessError(f"failed to parse {args[0]} output", output=output) from e

    def _parse_tunnel(self, data: Any, output_of: str) -> Tunnel:
        try:
            return Tunnel.model_validate(data)
        except ModelValidationError as e:
            raise ProcessError(f"failed to parse {output_of} output: {e}") from e

    def list_tunnels(self) -> list[Tunnel]:
        data = self._run_json("list") or []
        return [self._parse_tunnel(item, "list") for item in data]

    def create_tunnel(self, name: str) -> Tunnel:
        tunnel = self._parse_tunnel(self._run_json("create", name), "create")
        logger.info("Created tunnel", name=name, tunnel_id=tunnel.id)
        return tunnel

    def get_tunnel_info(self, name_or_id: str) -> Tunnel:
        return self._parse_tunnel(self._run_json("info", name_or_id), "info")

    def delete_tunnel(self, name_or_id: str) -> None:
        self.run("tunnel", "delete", name_or_id)
        logger.info("Deleted tunnel", tunnel=name_or_id)

    def route_dns(self, tunnel: str, hostname: str) -> None:
        self.run("tunnel", "route", "dns", tunnel, hostname)

    def validate_ingress(self, config_path: str | None = None) -> None:
        """Ask the runner to validate a local config file's ingress rules."""
        args = ["tunnel", "ingress", "validate"]
        if config_path:
            args += ["--config", config_path]
        self.run(*args)

    def version(self) -> str:
        return self.run("--version").strip()
