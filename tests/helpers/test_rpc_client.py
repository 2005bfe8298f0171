"""Tests for RPC client."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from typing import TYPE_CHECKING

from airdrop.helpers.errors import LogApiError, TransientFetchError
from airdrop.helpers.rpc import RPCClient, is_rate_limit_error


if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock


RPC_URL = "https://rpc.test/multichain/key"


class TestRPCClient:
    """Tests for RPCClient class."""

    def test_init_with_valid_url(self) -> None:
        """Test RPCClient initialization with valid URL."""
        client = RPCClient(RPC_URL)

        assert client.rpc_url == RPC_URL
        assert client.timeout == 30.0

    def test_init_with_custom_timeout(self) -> None:
        """Test RPCClient initialization with custom timeout."""
        client = RPCClient(RPC_URL, timeout=60.0)

        assert client.timeout == 60.0

    def test_init_with_empty_url_raises(self) -> None:
        """Test that empty URL raises ValueError."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCClient("")

    def test_init_with_none_url_raises(self) -> None:
        """Test that None URL raises ValueError."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCClient(None)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_call_with_named_params(self) -> None:
        """Test named parameters are sent as a JSON-RPC params object."""
        client = RPCClient("https://test.rpc")
        mock_http_client = AsyncMock(spec=httpx.AsyncClient)
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {"logs": []},
        }
        mock_http_client.post.return_value = mock_response

        result = await client.call(
            mock_http_client, "ankr_getLogs", {"blockchain": "eth"}
        )

        assert result == {"logs": []}
        payload = mock_http_client.post.call_args.kwargs["json"]
        assert payload["method"] == "ankr_getLogs"
        assert payload["params"] == {"blockchain": "eth"}
        assert payload["jsonrpc"] == "2.0"

    @pytest.mark.asyncio
    async def test_call_without_params_sends_empty_list(self) -> None:
        """Test omitted params are sent as an empty list."""
        client = RPCClient("https://test.rpc")
        mock_http_client = AsyncMock(spec=httpx.AsyncClient)
        mock_response = MagicMock()
        mock_response.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": "0x1"}
        mock_http_client.post.return_value = mock_response

        await client.call(mock_http_client, "eth_blockNumber")

        assert mock_http_client.post.call_args.kwargs["json"]["params"] == []

    @pytest.mark.asyncio
    async def test_call_with_custom_timeout(self) -> None:
        """Test RPC call with custom timeout."""
        client = RPCClient("https://test.rpc", timeout=30.0)
        mock_http_client = AsyncMock(spec=httpx.AsyncClient)
        mock_response = MagicMock()
        mock_response.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": "0x1"}
        mock_http_client.post.return_value = mock_response

        await client.call(mock_http_client, "eth_blockNumber", timeout=60.0)

        assert mock_http_client.post.call_args.kwargs["timeout"] == 60.0


class TestErrorClassification:
    """Tests for transient vs fatal failure classification."""

    @pytest.mark.asyncio
    async def test_rpc_error_is_fatal(self, httpx_mock: "HTTPXMock") -> None:
        """Test a JSON-RPC error object raises LogApiError with its code."""
        httpx_mock.add_response(
            url=RPC_URL,
            method="POST",
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32602, "message": "invalid block range"},
            },
        )

        async with httpx.AsyncClient() as http:
            with pytest.raises(LogApiError, match="invalid block range") as exc_info:
                await RPCClient(RPC_URL).call(http, "ankr_getLogs", {})

        assert exc_info.value.code == -32602

    @pytest.mark.asyncio
    async def test_rate_limit_error_is_transient(self, httpx_mock: "HTTPXMock") -> None:
        """Test rate-limit RPC errors may be retried."""
        httpx_mock.add_response(
            url=RPC_URL,
            method="POST",
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32005, "message": "limit reached"},
            },
        )

        async with httpx.AsyncClient() as http:
            with pytest.raises(TransientFetchError, match="rate limited"):
                await RPCClient(RPC_URL).call(http, "ankr_getLogs", {})

    @pytest.mark.asyncio
    async def test_429_status_is_transient(self, httpx_mock: "HTTPXMock") -> None:
        """Test HTTP 429 is retryable."""
        httpx_mock.add_response(url=RPC_URL, method="POST", status_code=429)

        async with httpx.AsyncClient() as http:
            with pytest.raises(TransientFetchError, match="HTTP 429"):
                await RPCClient(RPC_URL).call(http, "ankr_getLogs", {})

    @pytest.mark.asyncio
    async def test_503_status_is_transient(self, httpx_mock: "HTTPXMock") -> None:
        """Test HTTP 503 is retryable."""
        httpx_mock.add_response(url=RPC_URL, method="POST", status_code=503)

        async with httpx.AsyncClient() as http:
            with pytest.raises(TransientFetchError):
                await RPCClient(RPC_URL).call(http, "ankr_getLogs", {})

    @pytest.mark.asyncio
    async def test_401_status_is_fatal(self, httpx_mock: "HTTPXMock") -> None:
        """Test authentication failures are not retried."""
        httpx_mock.add_response(
            url=RPC_URL, method="POST", status_code=401, text="Unauthorized"
        )

        async with httpx.AsyncClient() as http:
            with pytest.raises(LogApiError, match="HTTP 401") as exc_info:
                await RPCClient(RPC_URL).call(http, "ankr_getLogs", {})

        assert exc_info.value.code == 401

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, httpx_mock: "HTTPXMock") -> None:
        """Test network timeouts are retryable."""
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=RPC_URL)

        async with httpx.AsyncClient() as http:
            with pytest.raises(TransientFetchError, match="request failed"):
                await RPCClient(RPC_URL).call(http, "ankr_getLogs", {})

    @pytest.mark.asyncio
    async def test_non_json_body_is_transient(self, httpx_mock: "HTTPXMock") -> None:
        """Test an HTML error page from a proxy is retryable."""
        httpx_mock.add_response(url=RPC_URL, method="POST", text="<html>busy</html>")

        async with httpx.AsyncClient() as http:
            with pytest.raises(TransientFetchError, match="non-JSON"):
                await RPCClient(RPC_URL).call(http, "ankr_getLogs", {})

    @pytest.mark.asyncio
    async def test_request_body_is_json_rpc(self, httpx_mock: "HTTPXMock") -> None:
        """Test the request posted to the endpoint."""
        httpx_mock.add_response(
            url=RPC_URL, method="POST", json={"jsonrpc": "2.0", "id": 1, "result": None}
        )

        async with httpx.AsyncClient() as http:
            result = await RPCClient(RPC_URL).call(
                http, "ankr_getLogs", {"pageSize": 10}
            )

        assert result is None
        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body == {
            "jsonrpc": "2.0",
            "method": "ankr_getLogs",
            "params": {"pageSize": 10},
            "id": 1,
        }


class TestIsRateLimitError:
    """Tests for is_rate_limit_error function."""

    @pytest.mark.parametrize("code", [-32005, -32029, 429])
    def test_known_codes(self, code: int) -> None:
        """Test provider rate-limit codes."""
        assert is_rate_limit_error({"code": code, "message": "x"})

    def test_message_marker(self) -> None:
        """Test detection by message text."""
        assert is_rate_limit_error({"code": -32000, "message": "Too Many Requests"})

    def test_other_errors(self) -> None:
        """Test ordinary errors are not rate limits."""
        assert not is_rate_limit_error({"code": -32602, "message": "block range exceeded"})
        assert not is_rate_limit_error({})
