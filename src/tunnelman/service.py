"""Operations exposed to the terminal UI.

Hostname changes follow fetch -> edit -> validate -> push -> DNS sync. The
push carries no version check, so a concurrent editor's change is lost when
its push lands first.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from .auth import AuthSidecar, generate_password, sidecar_service_url
from .common.exceptions import (
    ConfigurationError,
    NotFoundError,
    ProcessError,
    TunnelmanError,
    ValidationError,
    is_not_found_error,
)
from .common.logging import get_logger
from .common.settings import TunnelmanSettings
from .common.utils import validate_non_empty_string
from .ingress import editor
from .ingress.models import PublicHostname, TunnelConfig
from .remote.api import CloudflareAPI
from .remote.config_client import RemoteConfigClient
from .remote.dns import DNSSynchronizer
from .remote.status import StatusResolver, StatusResult
from .runner.cli import TunnelRunnerCLI
from .runner.config_file import RunnerConfig, RunnerConfigStore
from .runner.models import Tunnel
from .runner.supervisor import ManagedProcess, ProcessSupervisor

logger = get_logger(__name__)


@dataclass
class HostnameChangeResult:
    """Outcome of a hostname add/update/remove.

    The ingress change has been pushed; ``dns_errors`` lists DNS sync
    failures that followed it.
    """

    config: TunnelConfig
    dns_errors: list[TunnelmanError] = field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return bool(self.dns_errors)


@dataclass
class _AuthState:
    original_service: str
    password: str


class TunnelService:
    """Facade over the remote config, DNS, status and process components."""

    def __init__(
        self,
        settings: TunnelmanSettings,
        *,
        api: CloudflareAPI | None = None,
        cli: TunnelRunnerCLI | None = None,
        config_client: RemoteConfigClient | None = None,
        dns: DNSSynchronizer | None = None,
        status_resolver: StatusResolver | None = None,
        supervisor: ProcessSupervisor | None = None,
        sidecar: AuthSidecar | None = None,
    ):
        self.settings = settings
        self.cli = cli or TunnelRunnerCLI(settings.runner_binary)
        if config_client is None or dns is None:
            api = api or CloudflareAPI(settings)
        self.config_client = config_client or RemoteConfigClient(api)  # type: ignore[arg-type]
        self.dns = dns or DNSSynchronizer(api, settings.selected_domain)  # type: ignore[arg-type]
        self.status_resolver = status_resolver or StatusResolver(self.cli)
        self.supervisor = supervisor or ProcessSupervisor(
            runner_binary=settings.runner_binary,
            config_store=RunnerConfigStore(settings.config_dir),
            stop_timeout=settings.stop_timeout,
        )
        self.sidecar = sidecar
        self._auth: dict[str, _AuthState] = {}
        logger.debug("TunnelService initialized", settings=settings.safe_dump())

    # Tunnels

    def list_tunnels(self) -> list[Tunnel]:
        return self.cli.list_tunnels()

    def create_tunnel(self, name: str) -> Tunnel:
        """Create a remote tunnel named ``name``.

        Raises:
            ValidationError: If ``name`` is empty
            ProcessError: If the runner fails to create it
        """
        try:
            name = validate_non_empty_string(name, "Tunnel name")
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return self.cli.create_tunnel(name)

    def delete_tunnel(self, name_or_id: str) -> None:
        """Delete a tunnel, dropping any local process and config file first.

        Raises:
            NotFoundError: If the runner does not know the tunnel
            ProcessError: If the runner fails to delete it
        """
        if self.supervisor.get(name_or_id) is not None:
            self.supervisor.delete(name_or_id)
        self.supervisor.config_store.delete(name_or_id)
        try:
            self.cli.delete_tunnel(name_or_id)
        except ProcessError as e:
            if is_not_found_error(e):
                raise NotFoundError(f"tunnel {name_or_id} not found") from e
            raise

    def start_tunnel(
        self,
        name: str,
        config: RunnerConfig | None = None,
        cancel: threading.Event | None = None,
    ) -> ManagedProcess:
        return self.supervisor.start_managed(name, config, cancel=cancel)

    def start_quick_tunnel(
        self, name: str, url: str, cancel: threading.Event | None = None
    ) -> ManagedProcess:
        return self.supervisor.start_quick(name, url, cancel=cancel)

    def stop_tunnel(self, name: str) -> None:
        self.supervisor.stop(name)

    def restart_tunnel(self, name: str) -> ManagedProcess:
        return self.supervisor.restart(name)

    def tunnel_status(self, tunnel_id: str) -> StatusResult:
        return self.status_resolver.resolve(tunnel_id)

    def managed_processes(self) -> dict[str, ManagedProcess]:
        return self.supervisor.snapshot()

    # Public hostnames

    def list_hostnames(self, tunnel_id: str) -> list[PublicHostname]:
        hostnames = []
        for hostname in self.config_client.list_public_hostnames(tunnel_id):
            state = self._auth.get(hostname.hostname)
            if state is not None:
                hostname = hostname.model_copy(
                    update={
                        "auth_enabled": True,
                        "auth_password": state.password,
                        "original_service": state.original_service,
                    }
                )
            hostnames.append(hostname)
        return hostnames

    def _edit_and_push(
        self, tunnel_id: str, edit: Callable[[TunnelConfig], TunnelConfig]
    ) -> tuple[TunnelConfig, TunnelConfig]:
        """Apply ``edit`` to a fresh fetch and push it; returns (before, after)."""
        before = self.config_client.fetch(tunnel_id)
        after = edit(before)
        editor.validate(after)
        self.config_client.push(tunnel_id, after)
        return before, after

    def _sync_dns(
        self,
        result: HostnameChangeResult,
        tunnel_id: str,
        hostname: str,
        action: Callable[[], object],
    ) -> None:
        # A DNS failure after the push is reported as a warning, not rolled back.
        try:
            action()
        except TunnelmanError as e:
            logger.warning(
                "Ingress updated but DNS sync failed",
                tunnel_id=tunnel_id,
                hostname=hostname,
                error=str(e),
            )
            result.dns_errors.append(e)

    def add_hostname(
        self,
        tunnel_id: str,
        hostname: str,
        path: str = "",
        service: str = "",
        overwrite_dns: bool = False,
    ) -> HostnameChangeResult:
        """Route ``hostname``/``path`` to ``service`` and create its CNAME.

        Raises:
            ValidationError: If the resulting rules are malformed
            ConflictError: If the hostname and path are already routed
            RemoteAPIError: If fetching or pushing the config fails
        """
        service = service or self.settings.default_service
        before, config = self._edit_and_push(
            tunnel_id, lambda cfg: editor.insert(cfg, hostname, path, service)
        )
        logger.info("Hostname added", tunnel_id=tunnel_id, hostname=hostname, path=path)

        result = HostnameChangeResult(config)
        if before.routes_hostname(hostname):
            logger.debug("Hostname already has a DNS record", hostname=hostname)
            return result
        self._sync_dns(
            result,
            tunnel_id,
            hostname,
            lambda: self.dns.on_hostname_added(hostname, tunnel_id, overwrite_dns),
        )
        return result

    def update_hostname(
        self,
        tunnel_id: str,
        original_hostname: str,
        new_hostname: str,
        path: str = "",
        service: str = "",
    ) -> HostnameChangeResult:
        """Rewrite a hostname rule; a renamed hostname moves its CNAME too.

        Raises:
            NotFoundError: If ``original_hostname`` is not routed
            ValidationError: If the resulting rules are malformed
            RemoteAPIError: If fetching or pushing the config fails
        """
        service = service or self.settings.default_service
        before, config = self._edit_and_push(
            tunnel_id,
            lambda cfg: editor.update(cfg, original_hostname, new_hostname, path, service),
        )
        logger.info(
            "Hostname updated",
            tunnel_id=tunnel_id,
            hostname=original_hostname,
            new_hostname=new_hostname,
        )

        result = HostnameChangeResult(config)
        if new_hostname == original_hostname:
            return result
        # A hostname keeps its record while any path rule still serves it.
        if not config.routes_hostname(original_hostname):
            self._sync_dns(
                result,
                tunnel_id,
                original_hostname,
                lambda: self.dns.on_hostname_removed(original_hostname),
            )
        if not before.routes_hostname(new_hostname):
            self._sync_dns(
                result,
                tunnel_id,
                new_hostname,
                lambda: self.dns.on_hostname_added(new_hostname, tunnel_id),
            )
        return result

    def remove_hostname(
        self, tunnel_id: str, hostname: str, path: str = ""
    ) -> HostnameChangeResult:
        """Remove a hostname rule, and its DNS records once no rule uses the hostname.

        Raises:
            NotFoundError: If the hostname and path are not routed
            RemoteAPIError: If fetching or pushing the config fails
        """
        _, config = self._edit_and_push(
            tunnel_id, lambda cfg: editor.remove(cfg, hostname, path)
        )
        logger.info("Hostname removed", tunnel_id=tunnel_id, hostname=hostname, path=path)

        result = HostnameChangeResult(config)
        if config.routes_hostname(hostname):
            return result
        self._sync_dns(
            result, tunnel_id, hostname, lambda: self.dns.on_hostname_removed(hostname)
        )
        return result

    def toggle_hostname_auth(self, tunnel_id: str, hostname: str) -> PublicHostname:
        """Put basic auth in front of ``hostname``, or take it away again.

        Raises:
            ConfigurationError: If no auth sidecar is configured
            NotFoundError: If ``hostname`` is not routed
        """
        if self.sidecar is None:
            raise ConfigurationError("no auth sidecar configured")

        target = next(
            (h for h in self.list_hostnames(tunnel_id) if h.hostname == hostname), None
        )
        if target is None:
            raise NotFoundError(f"hostname {hostname} not found")

        state = self._auth.get(hostname)
        if state is not None:
            self.sidecar.stop(hostname)
            self.update_hostname(
                tunnel_id, hostname, hostname, target.path, state.original_service
            )
            del self._auth[hostname]
            logger.info("Hostname auth disabled", hostname=hostname)
            return target.model_copy(
                update={
                    "auth_enabled": False,
                    "auth_password": None,
                    "service": state.original_service,
                }
            )

        password = generate_password()
        port = self.sidecar.start(hostname, target.service, password)
        service = sidecar_service_url(port)
        try:
            self.update_hostname(tunnel_id, hostname, hostname, target.path, service)
        except TunnelmanError:
            self.sidecar.stop(hostname)
            raise

        self._auth[hostname] = _AuthState(target.service, password)
        logger.info("Hostname auth enabled", hostname=hostname, port=port)
        return target.model_copy(
            update={
                "auth_enabled": True,
                "auth_password": password,
                "original_service": target.service,
                "service": service,
            }
        )
