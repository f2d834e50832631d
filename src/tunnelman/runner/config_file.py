"""Local YAML config files handed to the tunnel runner."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from ..common.exceptions import ConfigurationError, ValidationError
from ..common.logging import get_logger
from ..common.settings import CATCH_ALL_SERVICE
from ..ingress.editor import validate_rules
from ..ingress.models import IngressRule

logger = get_logger(__name__)

_FIELD_KEYS = {
    "tunnel_id": "tunnel",
    "credentials_file": "credentials-file",
    "log_level": "loglevel",
    "log_file": "logfile",
    "metrics": "metrics",
    "protocol": "protocol",
    "no_autoupdate": "no-autoupdate",
}


class RunnerConfig(BaseModel):
    """Runner config document: tunnel id, credentials and ordered ingress rules."""

    model_config = ConfigDict(frozen=True)

    tunnel_id: str = ""
    credentials_file: str = ""
    ingress: list[IngressRule] = Field(default_factory=list)
    log_level: str | None = None
    log_file: str | None = None
    metrics: str | None = None
    protocol: str | None = None
    no_autoupdate: bool = False
    extra: dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        """YAML mapping with empty optional keys left out."""
        data: dict[str, Any] = {
            "tunnel": self.tunnel_id,
            "credentials-file": self.credentials_file,
            "ingress": [rule.to_wire() for rule in self.ingress],
        }
        for field_name in ("log_level", "log_file", "metrics", "protocol", "no_autoupdate"):
            value = getattr(self, field_name)
            if value:
                data[_FIELD_KEYS[field_name]] = value
        data.update(self.extra)
        return data

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "RunnerConfig":
        known = set(_FIELD_KEYS.values()) | {"ingress"}
        values = {
            field_name: data[key] for field_name, key in _FIELD_KEYS.items() if key in data
        }
        return cls(
            ingress=[IngressRule.from_wire(rule) for rule in data.get("ingress") or []],
            extra={k: v for k, v in data.items() if k not in known},
            **values,
        )

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_document(), default_flow_style=False, sort_keys=False)


def validate_runner_config(config: RunnerConfig) -> None:
    """Check that a runner config can be started.

    Raises:
        ValidationError: If the tunnel id is missing or the rules are malformed
    """
    if not config.tunnel_id:
        raise ValidationError("tunnel ID is required")
    validate_rules(config.ingress)


class RunnerConfigStore:
    """Reads and writes ``<config_dir>/<name>.yml`` runner config files."""

    def __init__(self, config_dir: Path | str):
        self.config_dir = Path(config_dir)

    def path_for(self, name: str) -> Path:
        return self.config_dir / f"{name}.yml"

    def credentials_path(self, tunnel_id: str) -> Path:
        return self.config_dir / f"{tunnel_id}.json"

    def save(self, name: str, config: RunnerConfig) -> Path:
        """Write ``config`` for tunnel ``name`` and return its path.

        Raises:
            ConfigurationError: If the file cannot be written
        """
        path = self.path_for(name)
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(config.to_yaml())
        except OSError as e:
            raise ConfigurationError(f"failed to write config file {path}: {e}") from e
        logger.debug("Runner config saved", name=name, path=str(path))
        return path

    def load(self, name: str) -> RunnerConfig:
        """Read the config for tunnel ``name``.

        Raises:
            ConfigurationError: If the file is missing or not valid YAML
        """
        path = self.path_for(name)
        if not path.exists():
            raise ConfigurationError(f"config file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"failed to read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"config file {path} is not a mapping")
        return RunnerConfig.from_document(data)

    def delete(self, name: str) -> None:
        """Remove the config for ``name``; a missing file is not an error."""
        path = self.path_for(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise ConfigurationError(f"failed to delete config file {path}: {e}") from e

    def list_names(self) -> list[str]:
        return sorted(path.stem for path in self.config_dir.glob("*.yml"))

    def default_config(self, tunnel_id: str) -> RunnerConfig:
        """Config with only the 404 catch-all rule."""
        return RunnerConfig(
            tunnel_id=tunnel_id,
            credentials_file=str(self.credentials_path(tunnel_id)),
            ingress=[IngressRule(service=CATCH_ALL_SERVICE)],
            log_level="info",
        )

    def web_service_config(
        self, tunnel_id: str, hostname: str, service: str
    ) -> RunnerConfig:
        """Config routing one hostname to ``service`` ahead of the catch-all."""
        return RunnerConfig(
            tunnel_id=tunnel_id,
            credentials_file=str(self.credentials_path(tunnel_id)),
            ingress=[
                IngressRule(hostname=hostname, service=service),
                IngressRule(service=CATCH_ALL_SERVICE),
            ],
            log_level="info",
        )
