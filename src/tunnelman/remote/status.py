"""Coarse tunnel health derived from the tunnel's connection list."""

from dataclasses import dataclass
from typing import Protocol

from ..common.exceptions import TunnelmanError
from ..common.logging import get_logger
from ..runner.models import Tunnel, TunnelStatus

logger = get_logger(__name__)


class TunnelInfoSource(Protocol):
    """Anything that can look up a tunnel with its current connections."""

    def get_tunnel_info(self, name_or_id: str) -> Tunnel: ...


@dataclass(frozen=True)
class StatusResult:
    """Resolved status; ``error`` is set only when the status is UNKNOWN."""

    status: TunnelStatus
    error: Exception | None = None


def status_from_tunnel(tunnel: Tunnel) -> TunnelStatus:
    """Active when at least one connection is not pending reconnect."""
    if tunnel.has_active_connection:
        return TunnelStatus.ACTIVE
    return TunnelStatus.INACTIVE


class StatusResolver:
    """Polls the tunnel's connections; invoked on the caller's cadence."""

    def __init__(self, source: TunnelInfoSource):
        self.source = source

    def resolve(self, tunnel_id: str) -> StatusResult:
        try:
            tunnel = self.source.get_tunnel_info(tunnel_id)
        except TunnelmanError as e:
            logger.warning("Tunnel status lookup failed", tunnel_id=tunnel_id, error=str(e))
            return StatusResult(TunnelStatus.UNKNOWN, e)

        return StatusResult(status_from_tunnel(tunnel))
