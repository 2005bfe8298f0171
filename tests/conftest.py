"""Pytest configuration and shared fixtures for pipeline tests."""

from collections.abc import Callable
from pathlib import Path

from typing import Any

import httpx
import pytest
from rich.console import Console

from airdrop.helpers.config import HarvestConfig, RetryPolicy
from airdrop.snapshot.constants import (
    STAKE_DEPOSIT_TOPIC,
    TRANSFER_TOPIC,
    EventKind,
)
from airdrop.snapshot.models import LogsPage, LogsRequest


TOKEN = "0x" + "70" * 20
ZERO = "0x" + "00" * 20
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
CAROL = "0x" + "cc" * 20
DAVE = "0x" + "dd" * 20


def address_topic(address: str) -> str:
    return "0x" + "00" * 12 + address[2:].lower()


def uint_word(value: int) -> str:
    return "0x" + value.to_bytes(32, byteorder="big").hex()


class ScriptedLogsClient:
    """Log client returning queued pages, or raising queued exceptions."""

    def __init__(self, responses: list[LogsPage | Exception]) -> None:
        self.responses = list(responses)
        self.requests: list[LogsRequest] = []

    async def get_logs(
        self, client: httpx.AsyncClient, request: LogsRequest
    ) -> LogsPage:
        self.requests.append(request)
        if not self.responses:
            msg = "No scripted response left"
            raise AssertionError(msg)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def page_tokens(self) -> list[str | None]:
        return [request.page_token for request in self.requests]


@pytest.fixture
def addresses() -> dict[str, str]:
    """Well-known test addresses."""
    return {
        "token": TOKEN,
        "zero": ZERO,
        "alice": ALICE,
        "bob": BOB,
        "carol": CAROL,
        "dave": DAVE,
    }


@pytest.fixture
def transfer_log() -> Callable[..., dict[str, Any]]:
    """Factory for raw Transfer logs, decoded by the API unless decoded=False."""

    def make(sender: str, recipient: str, value: int, *, decoded: bool = True) -> dict[str, Any]:
        log: dict[str, Any] = {
            "address": TOKEN,
            "topics": [TRANSFER_TOPIC, address_topic(sender), address_topic(recipient)],
            "data": uint_word(value),
            "blockNumber": "0x10",
            "transactionHash": "0x" + "ab" * 32,
            "logIndex": "0x0",
        }
        if decoded:
            log["event"] = {
                "name": "Transfer",
                "inputs": [
                    {"name": "from", "type": "address", "indexed": True, "valueDecoded": sender},
                    {"name": "to", "type": "address", "indexed": True, "valueDecoded": recipient},
                    {"name": "value", "type": "uint256", "valueDecoded": str(value)},
                ],
            }
        return log

    return make


@pytest.fixture
def stake_log() -> Callable[..., dict[str, Any]]:
    """Factory for raw staking Deposit/Withdraw logs."""

    def make(
        subject: str,
        value: int,
        *,
        kind: EventKind = EventKind.STAKE_DEPOSIT,
        pool_id: int = 100,
        decoded: bool = False,
    ) -> dict[str, Any]:
        log: dict[str, Any] = {
            "address": TOKEN,
            "topics": [kind.topic, address_topic(subject), uint_word(pool_id)],
            "data": uint_word(value),
            "blockNumber": "0x20",
        }
        if decoded:
            log["event"] = {
                "name": "Deposit" if kind.topic == STAKE_DEPOSIT_TOPIC else "Withdraw",
                "inputs": [
                    {"name": "user", "type": "address", "valueDecoded": subject},
                    {"name": "pid", "type": "uint256", "valueDecoded": str(pool_id)},
                    {"name": "amount", "type": "uint256", "valueDecoded": str(value)},
                ],
            }
        return log

    return make


@pytest.fixture
def page() -> Callable[..., LogsPage]:
    """Factory for log pages."""

    def make(logs: list[dict[str, Any]], next_page_token: str | None = None) -> LogsPage:
        return LogsPage(logs=logs, next_page_token=next_page_token)

    return make


@pytest.fixture
def scripted_client() -> Callable[[list[LogsPage | Exception]], ScriptedLogsClient]:
    """Factory for scripted log clients."""
    return ScriptedLogsClient


@pytest.fixture
def harvest_config(tmp_path: Path) -> HarvestConfig:
    """Harvest configuration writing into a temporary directory, no backoff."""
    return HarvestConfig(
        api_url="https://rpc.test/multichain/key",
        network="metis",
        retry=RetryPolicy(max_retries=3, base_delay=0, max_delay=0),
        snapshot_dir=tmp_path,
    )


@pytest.fixture
def quiet_console() -> Console:
    return Console(quiet=True)
