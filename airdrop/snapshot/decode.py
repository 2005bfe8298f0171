"""Decode raw log entries into ledger events.

The API's ``decodeLogs`` output is used when present. Otherwise the
indexed topics and ABI-encoded data are decoded directly, which covers
contracts the API has no ABI for.
"""

from typing import Any

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import is_hex
from pydantic import ValidationError

from airdrop.helpers.errors import DecodeError
from airdrop.helpers.parsers import normalize_address, parse_amount, topic_to_address
from airdrop.snapshot.constants import EventKind
from airdrop.snapshot.models import LedgerEvent, LogEvent, StakeEvent, TransferEvent


def _decode_data_uint(data: str) -> int:
    if not is_hex(data):
        msg = f"log data is not hex: {data[:20]!r}"
        raise DecodeError(msg)
    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    try:
        (value,) = decode(["uint256"], raw)
    except DecodingError as e:
        msg = f"log data is not a uint256: {e}"
        raise DecodeError(msg) from e
    return value


def _decoded_values(log: LogEvent) -> list[Any] | None:
    """Positional ``valueDecoded`` list, or None when the API did not decode."""
    if log.event is None or len(log.event.inputs) != 3:
        return None
    values = [item.value_decoded for item in log.event.inputs]
    if any(value is None for value in values):
        return None
    return values


def _split_topics(log: LogEvent, kind: EventKind) -> list[str]:
    if len(log.topics) != 3:
        msg = f"expected 3 topics for {kind.signature}, got {len(log.topics)}"
        raise DecodeError(msg)
    return log.topics


def decode_transfer(log: LogEvent) -> TransferEvent:
    """Decode a ``Transfer(address,address,uint256)`` log.

    Raises:
        DecodeError: If the log is not a well-formed fungible transfer
    """
    values = _decoded_values(log)
    try:
        if values is not None:
            sender, recipient, value = values
            return TransferEvent(
                sender=normalize_address(sender),
                recipient=normalize_address(recipient),
                value=parse_amount(value),
            )

        topics = _split_topics(log, EventKind.TRANSFER)
        return TransferEvent(
            sender=topic_to_address(topics[1]),
            recipient=topic_to_address(topics[2]),
            value=_decode_data_uint(log.data),
        )
    except (ValueError, ValidationError) as e:
        msg = f"malformed transfer log: {e}"
        raise DecodeError(msg) from e


def decode_stake(log: LogEvent, kind: EventKind) -> StakeEvent:
    """Decode a staking ``Deposit``/``Withdraw(address,uint256,uint256)`` log.

    Raises:
        DecodeError: If the log does not carry subject, pool id and amount
    """
    values = _decoded_values(log)
    try:
        if values is not None:
            subject, pool_id, value = values
            return StakeEvent(
                kind=kind,
                subject=normalize_address(subject),
                pool_id=parse_amount(pool_id),
                value=parse_amount(value),
            )

        topics = _split_topics(log, kind)
        return StakeEvent(
            kind=kind,
            subject=topic_to_address(topics[1]),
            pool_id=parse_amount(topics[2]),
            value=_decode_data_uint(log.data),
        )
    except (ValueError, ValidationError) as e:
        msg = f"malformed {kind.value} log: {e}"
        raise DecodeError(msg) from e


def decode_log(
    raw: dict[str, Any], kind: EventKind, pool_id: int | None = None
) -> LedgerEvent:
    """Validate and decode one raw log for the requested event kind.

    Args:
        raw: Log mapping as returned by the API
        kind: Event kind the page was requested for
        pool_id: For stake events, the only pool that is accepted

    Returns:
        The decoded transfer or stake event

    Raises:
        DecodeError: If the log is malformed, removed by a reorg, carries a
            different topic0, or belongs to another pool
    """
    try:
        log = LogEvent.model_validate(raw)
    except ValidationError as e:
        msg = f"invalid log entry: {e.error_count()} validation errors"
        raise DecodeError(msg) from e

    if log.removed:
        msg = "log was removed by a chain reorganization"
        raise DecodeError(msg)
    if not log.topics:
        msg = f"log has no topics, cannot match {kind.signature}"
        raise DecodeError(msg)
    if log.topics[0].lower() != kind.topic:
        msg = f"unexpected topic0 {log.topics[0]} for {kind.signature}"
        raise DecodeError(msg)

    if kind is EventKind.TRANSFER:
        return decode_transfer(log)

    event = decode_stake(log, kind)
    if pool_id is not None and event.pool_id != pool_id:
        msg = f"stake log for pool {event.pool_id}, expected {pool_id}"
        raise DecodeError(msg)
    return event


__all__ = ["decode_log", "decode_stake", "decode_transfer"]
