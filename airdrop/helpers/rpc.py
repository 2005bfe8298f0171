"""JSON-RPC client utilities."""

from typing import Any

import httpx

from airdrop.helpers.constants import DEFAULT_TIMEOUT, RETRYABLE_STATUS_CODES
from airdrop.helpers.errors import LogApiError, TransientFetchError


RATE_LIMIT_CODES = frozenset({-32005, -32029, 429})
"""JSON-RPC error codes providers use for rate limiting"""

_RATE_LIMIT_MARKERS = ("rate limit", "too many requests")


def is_rate_limit_error(error: dict[str, Any]) -> bool:
    """Check whether a JSON-RPC error object signals rate limiting.

    Args:
        error: The ``error`` member of a JSON-RPC response

    Returns:
        True if the request should be retried later
    """
    if error.get("code") in RATE_LIMIT_CODES:
        return True
    message = str(error.get("message", "")).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


class RPCClient:
    """JSON-RPC 2.0 client that classifies failures as transient or fatal."""

    def __init__(self, rpc_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "ankr_getLogs")
            params: Positional list or named parameter object
            timeout: Optional timeout override

        Returns:
            RPC result value

        Raises:
            TransientFetchError: On network errors, timeouts, retryable HTTP
                statuses, unparsable bodies and rate-limit errors
            LogApiError: On any other HTTP or JSON-RPC error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params if params is not None else [],
            "id": 1,
        }

        try:
            response = await client.post(
                self.rpc_url, json=payload, timeout=timeout or self.timeout
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in RETRYABLE_STATUS_CODES:
                msg = f"{method} HTTP {status}"
                raise TransientFetchError(msg) from e
            msg = f"{method} HTTP {status}: {e.response.text[:200]}"
            raise LogApiError(msg, code=status) from e
        except httpx.HTTPError as e:
            msg = f"{method} request failed: {e!r}"
            raise TransientFetchError(msg) from e
        except ValueError as e:
            msg = f"{method} returned a non-JSON body"
            raise TransientFetchError(msg) from e

        if not isinstance(result, dict):
            msg = f"{method} returned an unexpected payload: {result!r}"
            raise TransientFetchError(msg)

        error = result.get("error")
        if error:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            if is_rate_limit_error(error):
                msg = f"{method} rate limited: {error.get('message')}"
                raise TransientFetchError(msg)
            msg = f"RPC error: {error}"
            raise LogApiError(msg, code=error.get("code"))

        return result.get("result")


__all__ = [
    "RATE_LIMIT_CODES",
    "RPCClient",
    "is_rate_limit_error",
]
