"""Clients for the remote tunnel configuration, DNS and status APIs."""

from .api import CloudflareAPI
from .config_client import RemoteConfigClient
from .dns import DNSRecord, DNSRecordType, DNSSynchronizer
from .status import StatusResolver, StatusResult, TunnelInfoSource

__all__ = [
    "CloudflareAPI",
    "RemoteConfigClient",
    "DNSRecord",
    "DNSRecordType",
    "DNSSynchronizer",
    "StatusResolver",
    "StatusResult",
    "TunnelInfoSource",
]
