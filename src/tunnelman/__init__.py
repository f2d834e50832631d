"""tunnelman - manage Cloudflare tunnels, public hostnames and cloudflared processes."""

from .auth import AuthSidecar, generate_password
from .common.exceptions import (
    BinaryNotFoundError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    OperationCancelledError,
    ProcessError,
    RemoteAPIError,
    TunnelmanError,
    ValidationError,
)
from .common.logging import get_logger, setup_logging
from .common.settings import TunnelmanSettings
from .ingress import IngressRule, PublicHostname, TunnelConfig, editor
from .remote import (
    CloudflareAPI,
    DNSRecord,
    DNSSynchronizer,
    RemoteConfigClient,
    StatusResolver,
    StatusResult,
)
from .runner import (
    ManagedProcess,
    ProcessSupervisor,
    RunnerConfig,
    RunnerConfigStore,
    Tunnel,
    TunnelRunnerCLI,
    TunnelStatus,
)
from .service import HostnameChangeResult, TunnelService

# Setup logging on package initialization
setup_logging(level="INFO")

logger = get_logger(__name__)

__version__ = "0.1.0"


__all__ = [
    # Facade
    "TunnelService",
    "HostnameChangeResult",
    # Ingress
    "IngressRule",
    "TunnelConfig",
    "PublicHostname",
    "editor",
    # Remote
    "CloudflareAPI",
    "RemoteConfigClient",
    "DNSRecord",
    "DNSSynchronizer",
    "StatusResolver",
    "StatusResult",
    # Processes
    "ProcessSupervisor",
    "ManagedProcess",
    "RunnerConfig",
    "RunnerConfigStore",
    "TunnelRunnerCLI",
    "Tunnel",
    "TunnelStatus",
    # Auth sidecar
    "AuthSidecar",
    "generate_password",
    # Settings
    "TunnelmanSettings",
    # Exceptions
    "TunnelmanError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "ConfigurationError",
    "OperationCancelledError",
    "RemoteAPIError",
    "ProcessError",
    "BinaryNotFoundError",
    # Logging
    "get_logger",
    "setup_logging",
]
