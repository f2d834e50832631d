"""Authenticated transport for the Cloudflare v4 REST API."""

from types import TracebackType
from typing import Any, Literal

import httpx

from ..common.exceptions import (
    ConfigurationError,
    RemoteAPIError,
    is_authentication_error,
    is_rate_limit_error,
)
from ..common.logging import get_logger
from ..common.settings import TunnelmanSettings

logger = get_logger(__name__)


class CloudflareAPI:
    """Thin synchronous client that unwraps the ``success/result/errors`` envelope.

    No retries are attempted; every failure surfaces as :class:`RemoteAPIError`.
    """

    def __init__(
        self,
        settings: TunnelmanSettings,
        client: httpx.Client | None = None,
    ):
        """Initialize the API transport.

        Args:
            settings: Credentials, base URL and timeout
            client: Pre-built httpx client (tests); built from settings if None

        Raises:
            ConfigurationError: If no API token is configured
        """
        if not settings.api_token:
            raise ConfigurationError("Cloudflare API token is required")

        self.settings = settings
        self._account_id = settings.account_id
        self._client = client or httpx.Client(
            base_url=settings.api_base_url,
            timeout=httpx.Timeout(settings.request_timeout, connect=10.0),
            headers=self._auth_headers(),
        )

    def _auth_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.uses_api_key:
            headers["X-Auth-Email"] = self.settings.api_email or ""
            headers["X-Auth-Key"] = self.settings.api_token
        else:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Issue one request and return the envelope's ``result``.

        Raises:
            RemoteAPIError: On transport failure, non-2xx status or ``success: false``
        """
        logger.debug("API request", method=method, path=path)
        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error("API transport failure", method=method, path=path, error=str(e))
            raise RemoteAPIError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        errors: list[dict[str, Any]] = []
        if isinstance(body, dict):
            errors = body.get("errors") or []

        if not response.is_success:
            error = RemoteAPIError(
                f"API request failed with status {response.status_code}",
                status_code=response.status_code,
                errors=errors,
            )
            if is_rate_limit_error(error):
                logger.warning("API rate limit reached", method=method, path=path)
            else:
                logger.warning(
                    "API request rejected",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                    errors=errors,
                )
            raise error

        if not isinstance(body, dict) or not body.get("success", False):
            raise RemoteAPIError(
                "API request failed",
                status_code=response.status_code,
                errors=errors,
            )

        return body.get("result")

    @property
    def account_id(self) -> str:
        """Account id from settings, or the first account visible to the token.

        Raises:
            ConfigurationError: If no account is visible
        """
        if not self._account_id:
            accounts = self.request("GET", "/accounts") or []
            if not accounts:
                raise ConfigurationError("account ID not available")
            self._account_id = accounts[0]["id"]
            logger.info("Resolved account", account_id=self._account_id)
        return self._account_id

    def verify_credentials(self) -> None:
        """Check the configured credentials against the API.

        Raises:
            ConfigurationError: If the credentials are rejected
            RemoteAPIError: If the check itself fails
        """
        path = "/user" if self.settings.uses_api_key else "/user/tokens/verify"
        try:
            self.request("GET", path)
        except RemoteAPIError as e:
            if is_authentication_error(e):
                raise ConfigurationError(f"API credentials rejected: {e}") from e
            raise

    def list_zones(self, name: str | None = None) -> list[dict[str, Any]]:
        """List zones, optionally filtered by domain name."""
        params = {"name": name} if name else None
        return self.request("GET", "/zones", params=params) or []

    def available_domains(self) -> list[str]:
        return [zone["name"] for zone in self.list_zones()]

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "CloudflareAPI":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False

