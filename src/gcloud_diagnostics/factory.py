# ABOUTME: Factory for request functions that authorize and retry automatically
# ABOUTME: Resolves credentials lazily once per factory and caches the client

import logging
from typing import Any, List, Mapping, Optional, Tuple, Union

from gcloud_diagnostics.auth.credentials import AuthClient
from gcloud_diagnostics.auth.resolver import resolve_credentials
from gcloud_diagnostics.config import DEFAULT_SCOPES, CredentialConfig
from gcloud_diagnostics.transport import RequestOptions, normalize_options
from gcloud_diagnostics.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class AuthorizedRequestFactory:
    """Makes authorized requests to Google APIs.

    Calling an instance performs one logical request::

        request = AuthorizedRequestFactory(scopes, {"keyFile": "key.json"})
        response, body = await request("https://www.googleapis.com/...")

    The auth client is resolved on first use and reused for every later
    request from the same factory. Requests that start before the first
    resolution finishes each resolve on their own; only the first result to
    complete is kept. Transient HTTP failures are retried with exponential
    backoff, credential failures are raised straight away and nothing is
    cached, so the next call tries again.
    """

    def __init__(
        self,
        scopes: Optional[List[str]] = None,
        config: Optional[Union[CredentialConfig, Mapping[str, Any]]] = None,
        auth=None,
    ):
        """Initialize the factory.

        Args:
            scopes: OAuth scopes to request (defaults to cloud-platform)
            config: Optional key file / in-memory credential options
            auth: Credential backend; defaults to google-auth
        """
        self.scopes = DEFAULT_SCOPES if scopes is None else list(scopes)
        self.config = CredentialConfig.coerce(config)
        self._auth = auth
        self._auth_client: Optional[AuthClient] = None
        self._request = retry_with_backoff(self._make_request)

    @property
    def auth_client(self) -> Optional[AuthClient]:
        """The cached auth client, or None before the first resolution."""
        return self._auth_client

    async def __call__(self, options: RequestOptions) -> Tuple[Any, str]:
        """Perform an authorized request.

        Args:
            options: URL string or request options mapping

        Returns:
            ``(response, body)`` of the successful request

        Raises:
            CredentialsError: If credentials could not be resolved
            RequestError: If the request failed fatally or after all retries
        """
        return await self._request(options)

    async def _make_request(self, options: RequestOptions) -> Tuple[Any, str]:
        # The auth client only accepts option mappings
        options = normalize_options(options)

        if self._auth_client is None:
            client = await resolve_credentials(self.scopes, self.config, auth=self._auth)
            if self._auth_client is None:
                logger.debug(f"Caching auth client for scopes {self.scopes}")
                self._auth_client = client

        # The auth client answers (body, response)
        body, response = await self._auth_client.request(options)
        return response, body


def authorized_request_factory(
    scopes: Optional[List[str]] = None,
    config: Optional[Union[CredentialConfig, Mapping[str, Any]]] = None,
    auth=None,
) -> AuthorizedRequestFactory:
    """Return a request function that authorizes with Google credentials.

    See AuthorizedRequestFactory for the calling convention.
    """
    return AuthorizedRequestFactory(scopes, config, auth=auth)
