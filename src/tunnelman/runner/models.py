"""Tunnel models reported by the tunnel-runner CLI."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TunnelStatus(str, Enum):
    """Tunnel status enumeration."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"
    UNKNOWN = "unknown"


class Connection(BaseModel):
    """Read-only snapshot of one edge connection of a tunnel."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = ""
    location: str = Field(default="", alias="colo_name")
    origin_ip: str = ""
    protocol: str | None = None
    is_pending_reconnect: bool = False
    opened_at: datetime | None = None


class Tunnel(BaseModel):
    """A remotely declared tunnel."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str = ""
    created_at: datetime | None = None
    connections: list[Connection] = Field(default_factory=list, alias="conns")

    @property
    def has_active_connection(self) -> bool:
        return any(not conn.is_pending_reconnect for conn in self.connections)

    @field_validator("connections", mode="before")
    @classmethod
    def validate_connections(cls, v):
        """The runner reports ``null`` for tunnels that never connected."""
        return v or []
