"""Client for Ankr's multichain ``ankr_getLogs`` API."""

import httpx
from pydantic import ValidationError

from airdrop.helpers.errors import TransientFetchError
from airdrop.helpers.rpc import RPCClient
from airdrop.snapshot.models import LogsPage, LogsRequest


GET_LOGS_METHOD = "ankr_getLogs"


class AnkrLogsClient:
    """Fetches pages of logs through the Advanced API.

    ``ankr_getLogs`` is used instead of ``eth_getLogs`` because it paginates
    large block ranges server-side and is not subject to the per-call
    block-range limits of public RPC nodes.
    """

    def __init__(self, rpc: RPCClient) -> None:
        self.rpc = rpc

    async def get_logs(
        self, client: httpx.AsyncClient, request: LogsRequest
    ) -> LogsPage:
        """Fetch one page of logs.

        Args:
            client: HTTP client instance
            request: Filter, block range and page token

        Returns:
            The page of raw logs and the next page token

        Raises:
            TransientFetchError: If the request may succeed when retried
            LogApiError: If the API rejected the request
        """
        result = await self.rpc.call(client, GET_LOGS_METHOD, request.to_params())
        if result is None:
            msg = f"{GET_LOGS_METHOD} returned no result"
            raise TransientFetchError(msg)
        try:
            return LogsPage.model_validate(result)
        except ValidationError as e:
            msg = f"{GET_LOGS_METHOD} returned a malformed page: {e.error_count()} errors"
            raise TransientFetchError(msg) from e


__all__ = ["GET_LOGS_METHOD", "AnkrLogsClient"]
