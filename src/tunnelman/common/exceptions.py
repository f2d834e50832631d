"""Custom exceptions for tunnelman."""

from typing import Any


class TunnelmanError(Exception):
    """Base exception for all tunnelman errors."""
    pass


class ValidationError(TunnelmanError):
    """Raised when an ingress rule set violates its structural invariants."""
    pass


class ConflictError(TunnelmanError):
    """Raised when a hostname, DNS record or running tunnel already exists."""
    pass


class NotFoundError(TunnelmanError):
    """Raised when a tunnel, hostname or DNS record cannot be found."""
    pass


class ConfigurationError(TunnelmanError):
    """Raised when configuration is missing or invalid."""
    pass


class OperationCancelledError(TunnelmanError):
    """Raised when a start request is cancelled before the process is spawned."""
    pass


class RemoteAPIError(TunnelmanError):
    """Raised when the remote API reports failure or cannot be reached.

    The provider's error payload is kept verbatim in ``errors``.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []

    def __str__(self) -> str:
        message = super().__str__()
        if self.errors:
            return f"{message}: {self.errors}"
        return message


class ProcessError(TunnelmanError):
    """Raised when tunnel-runner process operations fail.

    ``output`` holds the combined stdout/stderr of a failed invocation.
    """

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output

    def __str__(self) -> str:
        message = super().__str__()
        if self.output:
            return f"{message} - {self.output.strip()}"
        return message


class BinaryNotFoundError(ProcessError):
    """Raised when the tunnel-runner binary is not found or not executable."""
    pass


def is_not_found_error(error: BaseException | None) -> bool:
    """Check whether an error describes a missing resource."""
    if error is None:
        return False
    if isinstance(error, NotFoundError):
        return True
    text = str(error).lower()
    return "not found" in text or "does not exist" in text


def is_authentication_error(error: BaseException | None) -> bool:
    """Check whether an error was caused by bad or missing credentials."""
    if error is None:
        return False
    if isinstance(error, RemoteAPIError) and error.status_code in (401, 403):
        return True
    text = str(error).lower()
    return (
        "authentication" in text
        or "unauthorized" in text
        or "invalid token" in text
    )


def is_rate_limit_error(error: BaseException | None) -> bool:
    """Check whether an error was caused by provider rate limiting."""
    if error is None:
        return False
    if isinstance(error, RemoteAPIError) and error.status_code == 429:
        return True
    text = str(error).lower()
    return "rate limit" in text or "too many requests" in text
