"""DNS records that route public hostnames to tunnels."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..common.exceptions import ConfigurationError, ConflictError, NotFoundError
from ..common.logging import get_logger
from ..common.utils import cname_target
from .api import CloudflareAPI

logger = get_logger(__name__)

AUTO_TTL = 1


class DNSRecordType(str, Enum):
    """DNS record type enumeration."""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    TXT = "TXT"
    SRV = "SRV"
    NS = "NS"
    PTR = "PTR"


class DNSRecord(BaseModel):
    """A DNS record in the selected zone."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    zone_id: str | None = None
    name: str = Field(min_length=1)
    type: DNSRecordType
    content: str
    proxied: bool = False
    ttl: int = AUTO_TTL
    comment: str | None = None

    @property
    def can_be_proxied(self) -> bool:
        return self.type in (DNSRecordType.A, DNSRecordType.AAAA, DNSRecordType.CNAME)

    def to_request(self) -> dict[str, Any]:
        """Body for a create-record request."""
        return self.model_dump(
            mode="json", include={"type", "name", "content", "ttl", "proxied", "comment"},
            exclude_none=True,
        )


class DNSSynchronizer:
    """Keeps CNAME records in step with a tunnel's hostname rules."""

    def __init__(self, api: CloudflareAPI, selected_domain: str | None = None):
        self.api = api
        self.selected_domain = selected_domain

    def select_domain(self, domain: str) -> None:
        self.selected_domain = domain
        logger.info("Selected domain", domain=domain)

    def zone_id(self) -> str:
        """Resolve the zone of the selected domain.

        Raises:
            ConfigurationError: If no domain is selected
            NotFoundError: If no zone exists for the domain
        """
        if not self.selected_domain:
            raise ConfigurationError("no domain selected - please select a domain first")

        zones = self.api.list_zones(self.selected_domain)
        if not zones:
            raise NotFoundError(f"no zones found for domain: {self.selected_domain}")
        return zones[0]["id"]

    def list_records(
        self,
        name: str | None = None,
        record_type: DNSRecordType | None = None,
        zone_id: str | None = None,
    ) -> list[DNSRecord]:
        """List records of the selected zone, optionally filtered."""
        zone_id = zone_id or self.zone_id()
        params: dict[str, Any] = {}
        if name:
            params["name"] = name
        if record_type:
            params["type"] = record_type.value
        result = self.api.request("GET", f"/zones/{zone_id}/dns_records", params=params)
        return [DNSRecord.model_validate(item) for item in result or []]

    def _delete(self, zone_id: str, record: DNSRecord) -> None:
        self.api.request("DELETE", f"/zones/{zone_id}/dns_records/{record.id}")
        logger.info("Deleted DNS record", name=record.name, record_id=record.id)

    def on_hostname_added(
        self, hostname: str, tunnel_id: str, overwrite: bool = False
    ) -> DNSRecord:
        """Create the CNAME that points ``hostname`` at ``tunnel_id``.

        Raises:
            ConflictError: If a record exists and ``overwrite`` is False
            RemoteAPIError: If an API call fails
        """
        zone_id = self.zone_id()

        # A, AAAA and CNAME records on one name collide with the tunnel CNAME.
        existing = [
            record
            for record in self.list_records(hostname, zone_id=zone_id)
            if record.can_be_proxied
        ]
        if existing:
            if not overwrite:
                raise ConflictError(
                    f"DNS record for {hostname} already exists. "
                    "Use overwrite option to replace it"
                )
            for record in existing:
                self._delete(zone_id, record)

        record = DNSRecord(
            name=hostname,
            type=DNSRecordType.CNAME,
            content=cname_target(tunnel_id),
            proxied=True,
            ttl=AUTO_TTL,
        )
        result = self.api.request(
            "POST", f"/zones/{zone_id}/dns_records", json=record.to_request()
        )
        created = DNSRecord.model_validate(result) if result else record
        logger.info("Created DNS record", name=hostname, content=record.content)
        return created

    def on_hostname_removed(self, hostname: str) -> list[DNSRecord]:
        """Delete every record named ``hostname``.

        Raises:
            NotFoundError: If there is no such record
            RemoteAPIError: If an API call fails
        """
        zone_id = self.zone_id()

        records = self.list_records(hostname, zone_id=zone_id)
        if not records:
            raise NotFoundError(f"no DNS record found for {hostname}")

        for record in records:
            self._delete(zone_id, record)
        return records
