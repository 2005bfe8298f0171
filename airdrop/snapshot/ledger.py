"""Signed per-address balance accounting."""

from collections.abc import Iterable, Iterator

from airdrop.helpers.parsers import normalize_address
from airdrop.snapshot.constants import EventKind
from airdrop.snapshot.models import LedgerEvent, Snapshot, StakeEvent, TransferEvent


class BalanceLedger:
    """Accumulates signed deltas per address using exact integer arithmetic.

    Balances may go negative while events are replayed (for example when a
    block range starts after an address received its tokens). Only
    ``to_snapshot`` drops non-positive balances, so a later credit after a
    transient negative balance is accounted for correctly.

    Addresses in ``exclusions`` are tracked but never accumulate.
    """

    def __init__(self, exclusions: Iterable[str] = ()) -> None:
        self.exclusions = frozenset(normalize_address(a) for a in exclusions)
        self._balances: dict[str, int] = {}

    def _apply(self, address: str, delta: int) -> None:
        key = normalize_address(address)
        if key in self.exclusions:
            delta = 0
        self._balances[key] = self._balances.get(key, 0) + delta

    def credit(self, address: str, value: int) -> None:
        self._apply(address, value)

    def debit(self, address: str, value: int) -> None:
        self._apply(address, -value)

    def apply_transfer(self, event: TransferEvent) -> None:
        self.debit(event.sender, event.value)
        self.credit(event.recipient, event.value)

    def apply_stake(self, event: StakeEvent) -> None:
        if event.kind is EventKind.STAKE_DEPOSIT:
            self.credit(event.subject, event.value)
        elif event.kind is EventKind.STAKE_WITHDRAW:
            self.debit(event.subject, event.value)
        else:
            msg = f"Not a stake event kind: {event.kind}"
            raise ValueError(msg)

    def apply(self, event: LedgerEvent) -> None:
        """Apply a decoded transfer or stake event."""
        if isinstance(event, TransferEvent):
            self.apply_transfer(event)
        else:
            self.apply_stake(event)

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def items(self) -> Iterator[tuple[str, int]]:
        return iter(self._balances.items())

    def __len__(self) -> int:
        return len(self._balances)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and address.lower() in self._balances

    def to_snapshot(self) -> Snapshot:
        """Strictly positive balances, largest first.

        Equal balances are ordered by address descending so that the
        written file is byte-for-byte reproducible.
        """
        positive = [(address, value) for address, value in self._balances.items() if value > 0]
        positive.sort(key=lambda item: (item[1], item[0]), reverse=True)
        return dict(positive)


__all__ = ["BalanceLedger"]
