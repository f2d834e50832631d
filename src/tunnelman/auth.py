"""Basic-auth gating of a hostname through a local reverse-proxy sidecar."""

import secrets
from typing import Protocol

MIN_PASSWORD_LENGTH = 4
DEFAULT_PASSWORD_LENGTH = 6


class AuthSidecar(Protocol):
    """Local proxy that puts basic auth in front of ``target``."""

    def start(self, hostname: str, target: str, password: str) -> int:
        """Start gating ``hostname`` and return the local port to route to."""
        ...

    def stop(self, hostname: str) -> None: ...


def generate_password(length: int = DEFAULT_PASSWORD_LENGTH) -> str:
    """Random numeric password; lengths below 4 fall back to 6 digits."""
    if length < MIN_PASSWORD_LENGTH:
        length = DEFAULT_PASSWORD_LENGTH
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def sidecar_service_url(port: int) -> str:
    return f"http://localhost:{port}"
