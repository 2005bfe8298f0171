"""Tests for the signed balance ledger."""

import pytest

from airdrop.snapshot.constants import EventKind
from airdrop.snapshot.ledger import BalanceLedger
from airdrop.snapshot.models import StakeEvent, TransferEvent


ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
CAROL = "0x" + "cc" * 20


def transfer(sender: str, recipient: str, value: int) -> TransferEvent:
    return TransferEvent(sender=sender, recipient=recipient, value=value)


class TestBalanceLedger:
    """Tests for BalanceLedger class."""

    def test_transfer_moves_value(self) -> None:
        ledger = BalanceLedger()

        ledger.apply(transfer(ALICE, BOB, 40))

        assert ledger.balance_of(ALICE) == -40
        assert ledger.balance_of(BOB) == 40
        assert len(ledger) == 2

    def test_transient_negative_balance_recovers(self) -> None:
        """Test a debit before a credit is carried until the credit lands."""
        ledger = BalanceLedger()

        ledger.apply(transfer(ALICE, BOB, 10))
        ledger.apply(transfer(CAROL, ALICE, 25))

        assert ledger.balance_of(ALICE) == 15
        assert ledger.to_snapshot()[ALICE] == 15

    def test_addresses_are_case_insensitive(self) -> None:
        ledger = BalanceLedger()

        ledger.credit(ALICE.upper().replace("0X", "0x"), 5)
        ledger.credit(ALICE, 5)

        assert ledger.balance_of(ALICE) == 10
        assert ALICE.upper().replace("0X", "0x") in ledger
        assert len(ledger) == 1

    def test_exclusions_contribute_zero(self) -> None:
        """Test excluded addresses are tracked with a zero balance."""
        ledger = BalanceLedger(exclusions=[BOB])

        ledger.apply(transfer(ALICE, BOB, 40))
        ledger.apply(transfer(BOB, CAROL, 15))

        assert ledger.balance_of(BOB) == 0
        assert BOB in ledger
        assert ledger.balance_of(ALICE) == -40
        assert ledger.balance_of(CAROL) == 15

    def test_stake_events(self) -> None:
        ledger = BalanceLedger()

        ledger.apply(StakeEvent(kind=EventKind.STAKE_DEPOSIT, subject=ALICE, pool_id=100, value=9))
        ledger.apply(StakeEvent(kind=EventKind.STAKE_WITHDRAW, subject=ALICE, pool_id=100, value=4))

        assert ledger.balance_of(ALICE) == 5

    def test_transfer_kind_is_not_a_stake(self) -> None:
        ledger = BalanceLedger()
        event = StakeEvent(kind=EventKind.TRANSFER, subject=ALICE, pool_id=100, value=1)

        with pytest.raises(ValueError, match="Not a stake event kind"):
            ledger.apply_stake(event)

    def test_invalid_address_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid address"):
            BalanceLedger().credit("0xdead", 1)

    def test_sum_of_balances_is_conserved(self) -> None:
        """Test transfers only move value between addresses."""
        ledger = BalanceLedger()
        for sender, recipient, value in [
            (ALICE, BOB, 7),
            (BOB, CAROL, 3),
            (CAROL, ALICE, 11),
            (ALICE, CAROL, 2**130),
        ]:
            ledger.apply(transfer(sender, recipient, value))

        assert sum(value for _, value in ledger.items()) == 0


class TestToSnapshot:
    """Tests for BalanceLedger.to_snapshot."""

    def test_only_positive_balances(self) -> None:
        ledger = BalanceLedger()
        ledger.credit(ALICE, 0)
        ledger.debit(BOB, 3)
        ledger.credit(CAROL, 1)

        assert ledger.to_snapshot() == {CAROL: 1}

    def test_order_by_value_then_address_descending(self) -> None:
        ledger = BalanceLedger()
        ledger.credit(ALICE, 10)
        ledger.credit(CAROL, 10)
        ledger.credit(BOB, 20)

        assert list(ledger.to_snapshot().items()) == [(BOB, 20), (CAROL, 10), (ALICE, 10)]

    def test_empty_ledger(self) -> None:
        assert BalanceLedger().to_snapshot() == {}
