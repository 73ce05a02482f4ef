# ABOUTME: google-auth backed credential loading and authorized HTTP client
# ABOUTME: Wraps Credentials so requests carry a bearer token and fail on non-2xx

import asyncio
import json
import logging
from typing import Any, Dict, IO, List, Mapping, Optional, Tuple

import google.auth
from google.auth.credentials import Credentials
from google.auth.transport.requests import AuthorizedSession
import requests

from gcloud_diagnostics.errors import RequestError
from gcloud_diagnostics.transport import (
    DEFAULT_TIMEOUT,
    RequestOptions,
    normalize_options,
    request_kwargs,
    transport_error_code,
)

logger = logging.getLogger(__name__)


class AuthClient:
    """Issues HTTP requests authorized by a set of Google credentials."""

    def __init__(
        self,
        credentials: Credentials,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            credentials: google-auth credentials used to sign requests
            timeout: Default request timeout in seconds
        """
        self.credentials = credentials
        self.timeout = timeout
        self._session: Optional[AuthorizedSession] = None

    def create_scoped_required(self) -> bool:
        """Whether scopes must be applied before the credentials are usable."""
        return bool(getattr(self.credentials, 'requires_scopes', False))

    def create_scoped(self, scopes: List[str]) -> "AuthClient":
        """Return a new client whose credentials carry ``scopes``."""
        return AuthClient(self.credentials.with_scopes(scopes), timeout=self.timeout)

    async def request(self, options: RequestOptions) -> Tuple[str, requests.Response]:
        """Perform an authorized request.

        Returns:
            ``(body, response)`` for a 2xx response

        Raises:
            RequestError: On transport failure or a non-2xx status, with the
                status code as ``code``
        """
        # Built on the event loop so concurrent requests share one session
        if self._session is None:
            self._session = AuthorizedSession(self.credentials)
        return await asyncio.to_thread(self._send, self._session, normalize_options(options))

    def _send(
        self,
        session: AuthorizedSession,
        options: Dict[str, Any],
    ) -> Tuple[str, requests.Response]:
        kwargs = request_kwargs(options, timeout=self.timeout)
        try:
            response = session.request(**kwargs)
        except requests.RequestException as error:
            raise RequestError(str(error), code=transport_error_code(error)) from error

        if not 200 <= response.status_code < 300:
            raise RequestError(
                f"{kwargs['method']} {kwargs['url']} returned {response.status_code}",
                code=response.status_code,
                response=response,
                body=response.text,
            )

        return response.text, response


class GoogleAuth:
    """Credential backend creating AuthClients through google-auth.

    The three loaders mirror the ways a factory can be configured: ambient
    discovery, in-memory JSON and a JSON key file stream. All of them block
    and may raise google-auth, I/O or JSON errors.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def get_application_default(self) -> AuthClient:
        """Discover credentials from the environment.

        Honours GOOGLE_APPLICATION_CREDENTIALS, gcloud user credentials and
        the metadata server, in google-auth's order.
        """
        credentials, project_id = google.auth.default()
        logger.debug(f"Loaded application default credentials (project: {project_id})")
        return AuthClient(credentials, timeout=self.timeout)

    def from_json(self, info: Mapping[str, Any]) -> AuthClient:
        """Load credentials from parsed JSON key material."""
        credentials, _ = google.auth.load_credentials_from_dict(dict(info))
        return AuthClient(credentials, timeout=self.timeout)

    def from_stream(self, stream: IO[str]) -> AuthClient:
        """Load credentials from a readable JSON stream."""
        return self.from_json(json.load(stream))
