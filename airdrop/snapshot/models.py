"""Pydantic models for log API payloads and decoded ledger events."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from airdrop.snapshot.constants import EventKind


# Address (lower-cased) to positive amount, ordered for stable diffs
type Snapshot = dict[str, int]


class DecodedInput(BaseModel):
    """One decoded event argument as returned with ``decodeLogs``."""

    name: str = ""
    type: str = ""
    indexed: bool = False
    value_decoded: Any = Field(default=None, alias="valueDecoded")

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)


class DecodedEvent(BaseModel):
    """Event ABI match attached to a log by the API."""

    name: str = ""
    inputs: list[DecodedInput] = Field(default_factory=list)
    signature: str | None = None

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)


class LogEvent(BaseModel):
    """A single log entry returned by ``ankr_getLogs``."""

    address: str = Field(..., description="Emitting contract")
    topics: list[str] = Field(default_factory=list)
    data: str = Field(default="0x", description="ABI-encoded non-indexed args")
    block_number: str | int | None = Field(default=None, alias="blockNumber")
    transaction_hash: str | None = Field(default=None, alias="transactionHash")
    log_index: str | int | None = Field(default=None, alias="logIndex")
    removed: bool = False
    event: DecodedEvent | None = None

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)


class LogsPage(BaseModel):
    """One page of ``ankr_getLogs`` results.

    Logs are kept as raw mappings so that a single malformed entry is
    skipped by the decoder instead of failing the whole page.
    """

    logs: list[dict[str, Any]] = Field(default_factory=list)
    next_page_token: str | None = Field(default=None, alias="nextPageToken")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class LogsRequest(BaseModel):
    """Parameters of an ``ankr_getLogs`` call."""

    blockchain: str
    from_block: int = Field(..., alias="fromBlock", ge=0)
    to_block: int = Field(..., alias="toBlock", ge=0)
    address: str
    topics: list[str | list[str]]
    page_size: int = Field(..., alias="pageSize", gt=0)
    decode_logs: bool = Field(default=True, alias="decodeLogs")
    page_token: str | None = Field(default=None, alias="pageToken")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_params(self) -> dict[str, Any]:
        """Serialize as the named-parameter object the API expects."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TransferEvent(BaseModel):
    """Decoded ERC-20 ``Transfer(from, to, value)``."""

    sender: str = Field(..., alias="from")
    recipient: str = Field(..., alias="to")
    value: int = Field(..., ge=0)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class StakeEvent(BaseModel):
    """Decoded staking ``Deposit``/``Withdraw(user, pid, amount)``."""

    kind: EventKind
    subject: str
    pool_id: int = Field(..., ge=0)
    value: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)


type LedgerEvent = TransferEvent | StakeEvent


class HarvestResult(BaseModel):
    """Outcome of one harvest run."""

    snapshot: dict[str, int]
    logs_fetched: int = 0
    logs_skipped: int = 0
    pages_fetched: int = 0

    @property
    def total(self) -> int:
        return sum(self.snapshot.values())


__all__ = [
    "DecodedEvent",
    "DecodedInput",
    "HarvestResult",
    "LedgerEvent",
    "LogEvent",
    "LogsPage",
    "LogsRequest",
    "Snapshot",
    "StakeEvent",
    "TransferEvent",
]
