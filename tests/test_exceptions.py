"""Tests for exceptions and error classifiers."""

import pytest

from tunnelman.common.exceptions import (
    BinaryNotFoundError,
    NotFoundError,
    ProcessError,
    RemoteAPIError,
    TunnelmanError,
    ValidationError,
    is_authentication_error,
    is_not_found_error,
    is_rate_limit_error,
)


class TestExceptions:
    """Test the exception hierarchy."""

    @pytest.mark.parametrize(
        "error", [ValidationError("x"), RemoteAPIError("x"), BinaryNotFoundError("x")]
    )
    def test_all_errors_share_base(self, error):
        assert isinstance(error, TunnelmanError)

    def test_binary_not_found_is_process_error(self):
        assert issubclass(BinaryNotFoundError, ProcessError)

    def test_process_error_includes_output(self):
        error = ProcessError("command failed", output="error: no such tunnel\n")

        assert str(error) == "command failed - error: no such tunnel"

    def test_remote_error_keeps_payload(self):
        errors = [{"code": 1000, "message": "bad"}]
        error = RemoteAPIError("API request failed", status_code=400, errors=errors)

        assert error.errors == errors
        assert "bad" in str(error)


class TestClassifiers:
    """Test error classification helpers."""

    def test_not_found(self):
        assert is_not_found_error(NotFoundError("x"))
        assert is_not_found_error(ProcessError("failed", output="tunnel does not exist"))
        assert not is_not_found_error(None)
        assert not is_not_found_error(ProcessError("boom"))

    def test_authentication(self):
        assert is_authentication_error(RemoteAPIError("denied", status_code=403))
        assert is_authentication_error(RemoteAPIError("Invalid token provided"))
        assert not is_authentication_error(RemoteAPIError("boom", status_code=500))
        assert not is_authentication_error(None)

    def test_rate_limit(self):
        assert is_rate_limit_error(RemoteAPIError("slow down", status_code=429))
        assert is_rate_limit_error(RemoteAPIError("Too Many Requests"))
        assert not is_rate_limit_error(RemoteAPIError("boom", status_code=500))
        assert not is_rate_limit_error(None)
