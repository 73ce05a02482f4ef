# ABOUTME: Accessors for the GCE metadata service
# ABOUTME: Fetches project id/number, instance id and hostname with retries

import logging
from typing import Any, Dict, Optional, Tuple

from gcloud_diagnostics.config import GCLOUD_PROJECT, metadata_base_url
from gcloud_diagnostics.errors import ProjectDiscoveryError, RequestError
from gcloud_diagnostics.transport import HttpTransport
from gcloud_diagnostics.utils.retry import request_with_retry

logger = logging.getLogger(__name__)

PROJECT_ID_PATH = "/project/project-id"
PROJECT_NUMBER_PATH = "/project/numeric-project-id"
INSTANCE_ID_PATH = "/instance/id"
HOSTNAME_PATH = "/instance/hostname"

NOT_FOUND_MESSAGE = (
    "Could not auto-discover project-id. "
    f"Please export {GCLOUD_PROJECT} with your project name"
)


class MetadataClient:
    """Reads scalar values from the metadata service.

    Requests are unauthenticated and carry the ``Metadata-Flavor: Google``
    header. Headers passed to the accessors are extended in place with
    that header.
    """

    def __init__(self, transport=None, base_url: Optional[str] = None):
        """Initialize the client.

        Args:
            transport: Awaitable ``(options) -> (response, body)`` callable;
                defaults to HttpTransport
            base_url: Metadata service base URL; defaults to the
                GCE_METADATA_HOST aware default
        """
        self.transport = transport or HttpTransport()
        # Only a transport created here is closed by close()
        self._owns_transport = transport is None
        self.base_url = base_url or metadata_base_url()

    def close(self) -> None:
        """Close the default transport, if this client created it."""
        if self._owns_transport:
            self.transport.close()

    async def get_value(
        self,
        path: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[Any, str]:
        """GET a metadata path, retrying transient failures.

        Returns:
            ``(response, body)`` whatever the response status
        """
        if headers is None:
            headers = {}
        headers['Metadata-Flavor'] = 'Google'

        return await request_with_retry(self.transport, {
            'url': self.base_url + path,
            'headers': headers,
            'method': 'GET',
        })

    async def get_project_id(self, headers: Optional[Dict[str, str]] = None) -> str:
        """Get the id of the current project.

        Raises:
            ProjectDiscoveryError: If the metadata service is unreachable by
                name or does not answer 200
            RequestError: For other transport failures
        """
        return await self._discover_project(
            PROJECT_ID_PATH, headers, "Error discovering project id"
        )

    async def get_project_number(self, headers: Optional[Dict[str, str]] = None) -> str:
        """Get the numeric id of the current project.

        Fails the same way as get_project_id.
        """
        return await self._discover_project(
            PROJECT_NUMBER_PATH, headers, "Error discovering project num"
        )

    async def get_instance_id(self, headers: Optional[Dict[str, str]] = None) -> str:
        """Get the id of the current GCE instance.

        The body is returned whatever the response status.
        """
        _, instance_id = await self.get_value(INSTANCE_ID_PATH, headers)
        return instance_id

    async def get_hostname(self, headers: Optional[Dict[str, str]] = None) -> str:
        """Get the hostname of the current GCE instance.

        The body is returned whatever the response status.
        """
        _, hostname = await self.get_value(HOSTNAME_PATH, headers)
        return hostname

    async def _discover_project(
        self,
        path: str,
        headers: Optional[Dict[str, str]],
        failure_message: str,
    ) -> str:
        try:
            response, body = await self.get_value(path, headers)
        except RequestError as error:
            if error.code == 'ENOTFOUND':
                raise ProjectDiscoveryError(NOT_FOUND_MESSAGE, code=error.code) from error
            raise

        if response.status_code != 200:
            logger.debug(f"Metadata {path} answered {response.status_code}")
            raise ProjectDiscoveryError(failure_message, code=response.status_code)

        return body


async def _with_default_client(accessor: str, headers: Optional[Dict[str, str]]) -> str:
    client = MetadataClient()
    try:
        return await getattr(client, accessor)(headers)
    finally:
        client.close()


async def get_project_id(headers: Optional[Dict[str, str]] = None) -> str:
    """Get the current project id from the metadata service."""
    return await _with_default_client('get_project_id', headers)


async def get_project_number(headers: Optional[Dict[str, str]] = None) -> str:
    """Get the current project number from the metadata service."""
    return await _with_default_client('get_project_number', headers)


async def get_instance_id(headers: Optional[Dict[str, str]] = None) -> str:
    """Get the current instance id from the metadata service."""
    return await _with_default_client('get_instance_id', headers)


async def get_hostname(headers: Optional[Dict[str, str]] = None) -> str:
    """Get the current instance hostname from the metadata service."""
    return await _with_default_client('get_hostname', headers)
