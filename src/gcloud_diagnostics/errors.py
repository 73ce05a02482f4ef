# ABOUTME: Exception types raised by the diagnostics helpers
# ABOUTME: Carries the error code used to tell transient from fatal failures

from typing import Any, Optional


class DiagnosticsError(Exception):
    """Base class for errors raised by gcloud_diagnostics."""

    def __init__(self, message: str, code: Any = None):
        super().__init__(message)
        self.code = code


class RequestError(DiagnosticsError):
    """An HTTP request failed at the transport or HTTP layer.

    ``code`` is the HTTP status for error responses, or a symbolic
    transport code such as ``ENOTFOUND`` for connection failures.
    """

    def __init__(
        self,
        message: str,
        code: Any = None,
        response: Optional[Any] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message, code=code)
        self.response = response
        self.body = body


class CredentialsError(DiagnosticsError):
    """Credentials could not be resolved."""

    def __init__(self, message: str):
        # No code: resolution failures are never retried
        super().__init__(message, code=None)


class ProjectDiscoveryError(DiagnosticsError):
    """The metadata service could not tell us the current project."""
