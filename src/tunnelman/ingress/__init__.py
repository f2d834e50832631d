"""Ingress rule models and editing."""

from . import editor
from .models import (
    WILDCARD_PATH,
    IngressRule,
    PublicHostname,
    TunnelConfig,
    WarpRouting,
    normalize_path,
    storage_path,
)

__all__ = [
    "editor",
    "IngressRule",
    "PublicHostname",
    "TunnelConfig",
    "WarpRouting",
    "WILDCARD_PATH",
    "normalize_path",
    "storage_path",
]
