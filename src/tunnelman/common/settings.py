"""Runtime settings for tunnelman."""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils import sanitize_log_data

DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_SERVICE = "http://localhost:8080"
CATCH_ALL_SERVICE = "http_status:404"


class TunnelmanSettings(BaseSettings):
    """Settings read from ``TUNNELMAN_*`` environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="TUNNELMAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        str_strip_whitespace=True,
    )

    api_token: str = Field(default="", description="API token or legacy global API key")
    api_email: str | None = Field(
        default=None, description="Account email, switches to key+email authentication"
    )
    account_id: str | None = Field(
        default=None, description="Account id, resolved from the API when unset"
    )
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL)
    request_timeout: float = Field(default=30.0, gt=0, le=300)

    runner_binary: str = Field(default="cloudflared", min_length=1)
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".cloudflared")
    stop_timeout: float = Field(
        default=10.0, gt=0, le=120, description="Grace period before a forced kill"
    )

    default_service: str = Field(default=DEFAULT_SERVICE, min_length=1)
    selected_domain: str | None = Field(default=None)
    auto_refresh_seconds: int = Field(default=30, ge=1, le=3600)

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    log_file: str | None = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def uses_api_key(self) -> bool:
        """True when legacy key+email authentication is configured."""
        return bool(self.api_email)

    def safe_dump(self) -> dict[str, Any]:
        """Settings as a dictionary with secrets masked, for logging."""
        return sanitize_log_data(self.model_dump(mode="json"))
