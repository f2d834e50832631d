"""Fetch and push the remote ingress configuration of a tunnel."""

from ..common.logging import get_logger
from ..ingress.models import PublicHostname, TunnelConfig
from .api import CloudflareAPI

logger = get_logger(__name__)


class RemoteConfigClient:
    """Reads and replaces a tunnel's remote configuration document.

    ``push`` replaces the entire rule list and sends no version token, so a
    push built from a stale fetch silently discards concurrent edits. Callers
    must fetch immediately before editing.
    """

    def __init__(self, api: CloudflareAPI):
        self.api = api

    def _path(self, tunnel_id: str) -> str:
        return f"/accounts/{self.api.account_id}/cfd_tunnel/{tunnel_id}/configurations"

    def fetch(self, tunnel_id: str) -> TunnelConfig:
        """Fetch the current configuration of ``tunnel_id``.

        Raises:
            RemoteAPIError: If the API call fails or reports failure
        """
        result = self.api.request("GET", self._path(tunnel_id)) or {}
        config = TunnelConfig.from_wire(
            result.get("config") or {}, version=result.get("version")
        )
        logger.debug(
            "Fetched tunnel configuration",
            tunnel_id=tunnel_id,
            rules=len(config.ingress),
            version=config.version,
        )
        return config

    def push(self, tunnel_id: str, config: TunnelConfig) -> None:
        """Replace the remote configuration of ``tunnel_id`` with ``config``.

        Raises:
            RemoteAPIError: If the API call fails or reports failure
        """
        self.api.request("PUT", self._path(tunnel_id), json={"config": config.to_wire()})
        logger.info(
            "Pushed tunnel configuration", tunnel_id=tunnel_id, rules=len(config.ingress)
        )

    def list_public_hostnames(self, tunnel_id: str) -> list[PublicHostname]:
        """Hostname rules of ``tunnel_id``, without the catch-all."""
        config = self.fetch(tunnel_id)
        return [PublicHostname.from_rule(rule) for rule in config.hostname_rules()]
