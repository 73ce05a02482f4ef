# ABOUTME: Retry logic with exponential backoff for outbound HTTP requests
# ABOUTME: Classifies rate limits and server errors as transient and retries them

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRY_ATTEMPTS = 5
MIN_RETRY_TIMEOUT = 1000  # milliseconds

# 429 - Too many requests
# 500 - Internal server error
# 503 - Service unavailable
TRANSIENT_ERROR_CODES = (429, 500, 503)


def error_code(error: Any) -> Any:
    """Return the code used to classify an error, or None.

    Args:
        error: Exception (or any object) raised by a request

    Returns:
        The error's ``code`` attribute, or the response status for
        googleapiclient HttpErrors
    """
    if error is None:
        return None
    if isinstance(error, HttpError):
        return error.resp.status
    return getattr(error, 'code', None)


def is_transient_error(error: Any) -> bool:
    """Check if an error is worth retrying.

    Args:
        error: Exception to check

    Returns:
        True if the error code is 429, 500 or 503
    """
    return error_code(error) in TRANSIENT_ERROR_CODES


def retry_delay(attempt: int, initial_delay: int = MIN_RETRY_TIMEOUT) -> int:
    """Backoff delay in milliseconds before the given attempt runs.

    ``attempt`` is 1-indexed, so the delay before the first retry is
    ``retry_delay(1)``.
    """
    return initial_delay * 2 ** (attempt - 1)


def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    max_attempts: int = MAX_RETRY_ATTEMPTS,
    initial_delay: int = MIN_RETRY_TIMEOUT,
) -> Callable[..., Awaitable[T]]:
    """Retry a coroutine function with exponential backoff on transient errors.

    Retries on:
    - 429 (rate limit exceeded)
    - 500 (internal server error)
    - 503 (service unavailable)

    Does not retry on anything else, including errors without a code.

    Args:
        func: Coroutine function to retry
        max_attempts: Maximum number of attempts, including the first
        initial_delay: Delay before the first retry, in milliseconds

    Returns:
        Coroutine function returning the result of the first successful call

    Raises:
        Exception: The last error once it is fatal or attempts are exhausted
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        attempt = 1
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not is_transient_error(e) or attempt >= max_attempts:
                    raise

                delay = retry_delay(attempt, initial_delay)
                logger.warning(
                    f"Attempt {attempt}/{max_attempts} failed with "
                    f"code {error_code(e)}. Retrying in {delay}ms..."
                )
                await asyncio.sleep(delay / 1000)
                attempt += 1

    return wrapper


async def request_with_retry(
    request: Callable[[Any], Awaitable[T]],
    options: Any,
) -> T:
    """Perform ``request(options)``, retrying transient failures.

    Args:
        request: Coroutine function accepting request options
        options: Options passed unchanged to every attempt

    Returns:
        Result of the first successful attempt
    """
    return await retry_with_backoff(request)(options)
