# ABOUTME: Resolves an authorized client from scopes and credential options
# ABOUTME: Picks key file, in-memory JSON or ambient discovery, then applies scopes

import asyncio
import logging
from typing import List, Optional

from gcloud_diagnostics.auth.credentials import AuthClient, GoogleAuth
from gcloud_diagnostics.config import CredentialConfig
from gcloud_diagnostics.errors import CredentialsError

logger = logging.getLogger(__name__)


def _load_client(auth, config: Optional[CredentialConfig]) -> AuthClient:
    if config and config.key_file:
        logger.debug(f"Loading credentials from key file {config.key_file}")
        with open(config.key_file, encoding="utf-8") as stream:
            return auth.from_stream(stream)
    elif config and config.credentials:
        logger.debug("Loading credentials from in-memory JSON")
        return auth.from_json(config.credentials)
    else:
        logger.debug("Discovering application default credentials")
        return auth.get_application_default()


def _resolve(auth, scopes: List[str], config: Optional[CredentialConfig]) -> AuthClient:
    client = _load_client(auth, config)
    if client.create_scoped_required():
        client = client.create_scoped(scopes)
    return client


async def resolve_credentials(
    scopes: List[str],
    config: Optional[CredentialConfig] = None,
    auth=None,
) -> AuthClient:
    """Obtain an authorized client for ``scopes``.

    ``config.key_file`` is checked first, then ``config.credentials``;
    without either the environment's default credentials are used. The
    blocking load runs in a worker thread.

    Args:
        scopes: OAuth scopes, passed unchanged to the credentials
        config: Optional explicit credential options
        auth: Credential backend; defaults to a new GoogleAuth

    Returns:
        Client ready to make authorized requests

    Raises:
        CredentialsError: If the credentials could not be loaded or scoped
    """
    auth = auth or GoogleAuth()
    config = CredentialConfig.coerce(config)
    try:
        return await asyncio.to_thread(_resolve, auth, scopes, config)
    except Exception as error:
        raise CredentialsError(f"Could not load credentials: {error}") from error
