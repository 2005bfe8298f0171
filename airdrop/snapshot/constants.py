"""Event topics and defaults for log harvesting."""

from enum import StrEnum

from eth_utils import keccak


def event_topic(signature: str) -> str:
    """Compute the topic0 hash of an event signature.

    Example:
        >>> event_topic("Transfer(address,address,uint256)")[:10]
        '0xddf252ad'
    """
    return "0x" + keccak(text=signature).hex()


TRANSFER_SIGNATURE = "Transfer(address,address,uint256)"
STAKE_DEPOSIT_SIGNATURE = "Deposit(address,uint256,uint256)"
STAKE_WITHDRAW_SIGNATURE = "Withdraw(address,uint256,uint256)"

TRANSFER_TOPIC = event_topic(TRANSFER_SIGNATURE)
STAKE_DEPOSIT_TOPIC = event_topic(STAKE_DEPOSIT_SIGNATURE)
STAKE_WITHDRAW_TOPIC = event_topic(STAKE_WITHDRAW_SIGNATURE)

DEFAULT_POOL_ID = 100
"""Staking pool whose deposits and withdrawals are snapshotted"""


class EventKind(StrEnum):
    """Ledger events the harvester understands."""

    TRANSFER = "transfer"
    STAKE_DEPOSIT = "stake_deposit"
    STAKE_WITHDRAW = "stake_withdraw"

    @property
    def signature(self) -> str:
        return _SIGNATURES[self]

    @property
    def topic(self) -> str:
        return _TOPICS[self]

    @property
    def is_stake(self) -> bool:
        return self is not EventKind.TRANSFER


_SIGNATURES = {
    EventKind.TRANSFER: TRANSFER_SIGNATURE,
    EventKind.STAKE_DEPOSIT: STAKE_DEPOSIT_SIGNATURE,
    EventKind.STAKE_WITHDRAW: STAKE_WITHDRAW_SIGNATURE,
}

_TOPICS = {
    EventKind.TRANSFER: TRANSFER_TOPIC,
    EventKind.STAKE_DEPOSIT: STAKE_DEPOSIT_TOPIC,
    EventKind.STAKE_WITHDRAW: STAKE_WITHDRAW_TOPIC,
}

STAKE_KINDS = (EventKind.STAKE_DEPOSIT, EventKind.STAKE_WITHDRAW)
"""Stake runs harvest all deposits first, then all withdrawals"""


__all__ = [
    "DEFAULT_POOL_ID",
    "STAKE_DEPOSIT_TOPIC",
    "STAKE_KINDS",
    "STAKE_WITHDRAW_TOPIC",
    "TRANSFER_TOPIC",
    "EventKind",
    "event_topic",
]
