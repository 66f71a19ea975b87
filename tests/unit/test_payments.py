"""
Unit tests for value transfer backends.
"""

import pytest

from ascend.core.payments import InMemoryTransfer, Payout, StoredTransfer
from ascend.core.storage import StorageManager


ALICE = b"alice" + b"\x00" * 15
BOB = b"bob" + b"\x00" * 17


class TestInMemoryTransfer:
    """Tests for the in-memory balance sheet."""

    def test_transfer_credits_balance(self):
        transfer = InMemoryTransfer()
        assert transfer.transfer(ALICE, 100)
        assert transfer.transfer(ALICE, 50)

        assert transfer.balance_of(ALICE) == 150
        assert transfer.payouts == [Payout(ALICE, 100), Payout(ALICE, 50)]
        assert transfer.total_paid() == 150

    def test_failing_recipient(self):
        transfer = InMemoryTransfer()
        transfer.fail_for(BOB)

        assert not transfer.transfer(BOB, 100)
        assert transfer.balance_of(BOB) == 0
        assert transfer.payouts == []

    def test_hook_runs_before_booking(self):
        seen = []
        transfer = InMemoryTransfer()
        transfer.on_transfer = lambda to, amount: seen.append((to, amount, transfer.balance_of(to)))

        transfer.transfer(ALICE, 10)

        assert seen == [(ALICE, 10, 0)]


class TestStoredTransfer:
    """Tests for the staged SQLite payout book."""

    def test_transfers_are_staged_not_written(self, tmp_path):
        storage = StorageManager(tmp_path)
        transfer = StoredTransfer(storage)

        assert transfer.transfer(ALICE, 998)
        assert transfer.transfer(BOB, 5)

        assert storage.get_payouts() == []
        assert transfer.take_staged() == [Payout(ALICE, 998), Payout(BOB, 5)]
        assert transfer.take_staged() == []

    def test_balance_reads_booked_payouts(self, tmp_path):
        storage = StorageManager(tmp_path)
        transfer = StoredTransfer(storage)
        storage.persist_ledger_update({}, [], [], [], [(ALICE, 998), (ALICE, 2)])

        assert transfer.balance_of(ALICE) == 1000
        assert transfer.balance_of(BOB) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
