"""Common utilities and shared functionality."""

from .exceptions import (
    BinaryNotFoundError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    OperationCancelledError,
    ProcessError,
    RemoteAPIError,
    TunnelmanError,
    ValidationError,
    is_authentication_error,
    is_not_found_error,
    is_rate_limit_error,
)
from .logging import get_logger, setup_logging, setup_logging_from_settings
from .settings import TunnelmanSettings
from .utils import (
    cname_target,
    mask_sensitive_data,
    sanitize_log_data,
    validate_non_empty_string,
)

__all__ = [
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
    "is_not_found_error",
    "is_authentication_error",
    "is_rate_limit_error",
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_settings",
    # Settings
    "TunnelmanSettings",
    # Utils
    "cname_target",
    "mask_sensitive_data",
    "sanitize_log_data",
    "validate_non_empty_string",
]
