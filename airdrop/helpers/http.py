"""HTTP client utilities and helpers."""

from asyncio import sleep
from collections.abc import Awaitable, Callable
from functools import wraps

from typing import Any, ParamSpec, TypeVar

import httpx

from airdrop.helpers.config import RetryPolicy
from airdrop.helpers.constants import (
    DEFAULT_TIMEOUT,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from airdrop.helpers.logging import get_logger


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def retry_with_backoff(
    max_retries: int | None = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    *,
    retry_on: tuple[type[Exception], ...] = (httpx.HTTPError,),
    log_errors: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator to retry async functions with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately so that unrecoverable errors abort the caller.

    Args:
        max_retries: Maximum number of attempts (default: 10). ``None`` retries
            until the call succeeds.
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay between retries (default: 60.0)
        retry_on: Exception types that trigger a retry
        log_errors: Whether to log retry attempts (default: True)

    Returns:
        Decorated function that retries on the given exception types

    Example:
        ```python
        from airdrop.helpers.http import retry_with_backoff

        @retry_with_backoff(max_retries=3, base_delay=2.0)
        async def fetch_data(client: httpx.AsyncClient, url: str) -> dict:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()

        # Will retry up to 3 times with delays of 2s, 4s
        ```
    """
    if max_retries is not None and max_retries < 1:
        msg = f"max_retries must be at least 1, got {max_retries}"
        raise ValueError(msg)

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    attempt += 1
                    if max_retries is not None and attempt >= max_retries:
                        if log_errors:
                            logger.error(
                                "%s failed after %d attempts: %s",
                                func.__name__,
                                attempt,
                                e,
                            )
                        raise

                    if log_errors:
                        logger.warning(
                            "%s error (attempt %d/%s): %s",
                            func.__name__,
                            attempt,
                            max_retries if max_retries is not None else "inf",
                            e,
                        )

                # Exponential backoff with max_delay cap, exponent bounded for
                # unbounded policies
                delay = min(base_delay * (2 ** min(attempt - 1, 32)), max_delay)
                await sleep(delay)

        return wrapper

    return decorator


def retry_with_policy(
    policy: RetryPolicy,
    *,
    retry_on: tuple[type[Exception], ...] = (httpx.HTTPError,),
    log_errors: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Build a ``retry_with_backoff`` decorator from a RetryPolicy."""
    return retry_with_backoff(
        max_retries=policy.max_retries,
        base_delay=policy.base_delay,
        max_delay=policy.max_delay,
        retry_on=retry_on,
        log_errors=log_errors,
    )


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    Args:
        timeout: Default timeout in seconds (default: DEFAULT_TIMEOUT)
        **kwargs: Additional httpx.AsyncClient kwargs

    Returns:
        Configured AsyncClient instance

    Example:
        ```python
        from airdrop.helpers.http import create_http_client

        async with create_http_client(timeout=60.0) as client:
            response = await client.post(api_url, json=payload)
        ```
    """
    return httpx.AsyncClient(timeout=timeout, **kwargs)


__all__ = [
    "create_http_client",
    "retry_with_backoff",
    "retry_with_policy",
]
