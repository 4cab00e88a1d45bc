"""
Retry Logic for Model Backends

Provides the error types raised by the HTTP model clients and a retry
decorator with exponential backoff for transient network failures.

Usage:
    from cartllm_core.retry import retry_network

    @retry_network(max_attempts=2)
    async def post(url, payload):
        ...
"""

import asyncio
import logging
from functools import wraps
from typing import Callable, Type, Tuple

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """Network-related error (timeout, connection refused, 5xx, etc.)"""
    pass


class ModelUnavailableError(Exception):
    """The model backend refused the request or the model is missing"""
    pass


class RetryExhaustedError(Exception):
    """All retry attempts have been exhausted"""
    pass


def retry_network(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        NetworkError,
        TimeoutError,
        asyncio.TimeoutError,
        ConnectionError,
    ),
):
    """
    Decorator for retrying async functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        initial_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential backoff calculation
        retryable_exceptions: Tuple of exceptions that trigger retry
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    if attempt == max_attempts:
                        logger.error(
                            f"Retry exhausted for {func.__name__} after {max_attempts} attempts: {e}"
                        )
                        raise RetryExhaustedError(
                            f"Failed after {max_attempts} attempts: {e}"
                        ) from e

                    delay = min(
                        initial_delay * (exponential_base ** (attempt - 1)),
                        max_delay
                    )

                    logger.warning(
                        f"Attempt {attempt}/{max_attempts} failed for {func.__name__}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )

                    await asyncio.sleep(delay)

            raise last_exception

        return wrapper
    return decorator
