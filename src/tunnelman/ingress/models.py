"""Ingress rule models for remotely managed tunnel configurations.

Rules keep the fields this package understands as typed attributes and every
other wire field in an ``extra`` side map, so that unknown fields survive a
fetch-edit-push cycle unchanged.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

WILDCARD_PATH = "*"

_RULE_FIELDS = ("id", "hostname", "path", "service")
_CONFIG_FIELDS = ("ingress", "warp-routing")


def normalize_path(path: str | None) -> str:
    """Return the caller-facing form of a rule path: empty means ``*``."""
    return path or WILDCARD_PATH


def storage_path(path: str | None) -> str:
    """Return the stored form of a rule path: ``*`` is kept as empty."""
    if not path or path == WILDCARD_PATH:
        return ""
    return path


class IngressRule(BaseModel):
    """One entry of a tunnel's ordered routing table."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Opaque numeric id, string encoded")
    hostname: str = Field(default="", description="Empty for the catch-all rule")
    path: str = Field(default="", description="Empty means wildcard")
    service: str = Field(default="", description="Backend service target")
    extra: dict[str, Any] = Field(
        default_factory=dict, description="Wire fields preserved on round trip"
    )

    @property
    def is_catch_all(self) -> bool:
        return not self.hostname

    @property
    def normalized_path(self) -> str:
        return normalize_path(self.path)

    @property
    def numeric_id(self) -> int | None:
        """Rule id as an integer, or None when missing or non-numeric."""
        if not self.id:
            return None
        try:
            return int(self.id)
        except ValueError:
            return None

    def matches(self, hostname: str, path: str | None) -> bool:
        """Check whether this rule has the given hostname and normalized path."""
        return self.hostname == hostname and self.normalized_path == normalize_path(
            path
        )

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "IngressRule":
        """Build a rule from its JSON/YAML dictionary form."""
        raw_id = data.get("id")
        return cls(
            id=str(raw_id) if raw_id not in (None, "") else None,
            hostname=data.get("hostname") or "",
            path=data.get("path") or "",
            service=data.get("service") or "",
            extra={k: v for k, v in data.items() if k not in _RULE_FIELDS},
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the dictionary form used on the wire and in YAML."""
        data: dict[str, Any] = {}
        if self.id:
            data["id"] = self.id
        if self.hostname:
            data["hostname"] = self.hostname
        if self.path:
            data["path"] = self.path
        data["service"] = self.service
        data.update(self.extra)
        return data


class WarpRouting(BaseModel):
    """Private network routing switch of a tunnel configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False


class TunnelConfig(BaseModel):
    """Ordered ingress rules of a remotely managed tunnel.

    This is always a cached copy of the remote document; edits go through
    :mod:`tunnelman.ingress.editor` and are pushed back as a whole.
    """

    model_config = ConfigDict(frozen=True)

    ingress: list[IngressRule] = Field(default_factory=list)
    warp_routing: WarpRouting = Field(default_factory=WarpRouting)
    extra: dict[str, Any] = Field(default_factory=dict)
    version: int | None = Field(
        default=None, description="Remote version, informational only", exclude=True
    )

    @property
    def catch_all_index(self) -> int | None:
        """Index of the first rule without a hostname."""
        for index, rule in enumerate(self.ingress):
            if rule.is_catch_all:
                return index
        return None

    def hostname_rules(self) -> list[IngressRule]:
        """All rules except the catch-all."""
        return [rule for rule in self.ingress if not rule.is_catch_all]

    def routes_hostname(self, hostname: str) -> bool:
        """True when any rule, on any path, serves ``hostname``."""
        return any(rule.hostname == hostname for rule in self.hostname_rules())

    @classmethod
    def from_wire(cls, data: dict[str, Any], version: int | None = None) -> "TunnelConfig":
        """Build a config from the ``config`` object of the remote document."""
        warp = data.get("warp-routing") or {}
        return cls(
            ingress=[IngressRule.from_wire(rule) for rule in data.get("ingress") or []],
            warp_routing=WarpRouting(enabled=bool(warp.get("enabled", False))),
            extra={k: v for k, v in data.items() if k not in _CONFIG_FIELDS},
            version=version,
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the ``config`` object pushed to the remote API."""
        data: dict[str, Any] = {
            "ingress": [rule.to_wire() for rule in self.ingress],
            "warp-routing": {"enabled": self.warp_routing.enabled},
        }
        data.update(self.extra)
        return data


class PublicHostname(BaseModel):
    """A hostname rule as presented to callers."""

    id: str | None = None
    hostname: str
    path: str = ""
    service: str
    auth_enabled: bool = False
    auth_password: str | None = Field(default=None, repr=False)
    original_service: str | None = None

    @classmethod
    def from_rule(cls, rule: IngressRule) -> "PublicHostname":
        return cls(id=rule.id, hostname=rule.hostname, path=rule.path, service=rule.service)
