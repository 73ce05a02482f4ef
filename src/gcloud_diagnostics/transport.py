# ABOUTME: Plain HTTP transport used for unauthenticated requests
# ABOUTME: Runs requests in a worker thread and maps failures to RequestError

import asyncio
import logging
import socket
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import requests

from gcloud_diagnostics.errors import RequestError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds

RequestOptions = Union[str, Mapping[str, Any]]

# Option keys forwarded to requests as-is
_FORWARDED_OPTIONS = ("params", "data", "json", "timeout")


def normalize_options(options: RequestOptions) -> Dict[str, Any]:
    """Coerce a bare URL into a request options dict.

    Args:
        options: URL string or options mapping

    Returns:
        Options dict with at least a ``url`` key
    """
    if isinstance(options, str):
        return {'url': options}
    return dict(options)


def request_kwargs(
    options: Mapping[str, Any],
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Translate request options into keyword arguments for requests.

    Unknown option keys are ignored.
    """
    kwargs: Dict[str, Any] = {
        'method': options.get('method', 'GET'),
        'url': options['url'],
        'headers': dict(options.get('headers') or {}),
    }
    for key in _FORWARDED_OPTIONS:
        if key in options:
            kwargs[key] = options[key]
    if 'body' in options and 'data' not in kwargs:
        kwargs['data'] = options['body']
    if timeout is not None:
        kwargs.setdefault('timeout', timeout)
    return kwargs


def _is_name_resolution_failure(error: BaseException) -> bool:
    """Look through an exception chain for a DNS lookup failure."""
    seen = set()
    pending = [error]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        # urllib3 keeps the underlying error on ``reason``
        pending.extend([current.__cause__, current.__context__, getattr(current, 'reason', None)])
        pending.extend(arg for arg in current.args if isinstance(arg, BaseException))
    return False


def transport_error_code(error: requests.RequestException) -> Optional[str]:
    """Symbolic code for a transport failure."""
    if isinstance(error, requests.Timeout):
        return 'ETIMEDOUT'
    if isinstance(error, requests.ConnectionError) and _is_name_resolution_failure(error):
        return 'ENOTFOUND'
    return None


class HttpTransport:
    """Performs one unauthenticated HTTP request per call.

    HTTP error statuses are returned, not raised; only failures to get a
    response at all become ``RequestError``.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout

    async def __call__(self, options: RequestOptions) -> Tuple[requests.Response, str]:
        return await asyncio.to_thread(self._send, normalize_options(options))

    def _send(self, options: Dict[str, Any]) -> Tuple[requests.Response, str]:
        kwargs = request_kwargs(options, timeout=self.timeout)
        try:
            response = self.session.request(**kwargs)
        except requests.RequestException as error:
            code = transport_error_code(error)
            logger.debug(f"{kwargs['method']} {kwargs['url']} failed ({code}): {error}")
            raise RequestError(str(error), code=code) from error

        return response, response.text

    def close(self) -> None:
        """Close the underlying requests session."""
        self.session.close()
