"""
Ledger persistence across restarts.
"""

import logging

import pytest

from ascend.core.auction import AuctionClosed, AuctionLedger, Bid
from ascend.core.config import AuctionConfig
from ascend.core.payments import StoredTransfer
from ascend.core.storage import StorageManager


T0 = 1_700_000_000
OWNER = b"owner" + b"\x00" * 15
ALICE = b"alice" + b"\x00" * 15
BOB = b"bob" + b"\x00" * 17


@pytest.fixture
def temp_node_dir(tmp_path):
    """Create a temporary directory for auction data."""
    data_dir = tmp_path / "auction_data"
    data_dir.mkdir()
    return data_dir


def test_ledger_survives_restart(temp_node_dir):
    """State is preserved across restarts."""
    # 1. First process
    storage_a = StorageManager(data_dir=temp_node_dir)
    config = AuctionConfig(base_bid=500, commission_percent=10, strict_transfers=False)
    ledger_a = AuctionLedger(OWNER, T0, config=config, transfer=StoredTransfer(storage_a), storage_manager=storage_a)

    ledger_a.place_bid(ALICE, 525, T0 + 1)
    ledger_a.place_bid(BOB, 600, T0 + 2)
    ledger_a.withdraw(ALICE, T0 + 3)
    ledger_a.place_bid(ALICE, 700, T0 + 4)

    del ledger_a
    storage_a.close()
    del storage_a

    # 2. Second process, same directory
    storage_b = StorageManager(data_dir=temp_node_dir)
    ledger_b = AuctionLedger.load(storage_b, transfer=StoredTransfer(storage_b))

    assert ledger_b.config == config
    assert ledger_b.get_bids() == (Bid(ALICE, 525), Bid(BOB, 600), Bid(ALICE, 700))
    assert ledger_b.get_highest_bid() == Bid(ALICE, 700)
    assert ledger_b.get_known_bidders() == (ALICE, BOB)
    assert ledger_b.get_deposit(ALICE) == 700
    assert ledger_b.get_deposit(BOB) == 600
    assert ledger_b.deadline == T0 + config.auction_duration

    # 3. Continue and close
    ledger_b.close_auction(OWNER, T0 + 10)
    ledger_b.refund_losers(OWNER, T0 + 11)
    storage_b.close()

    # 4. Third process sees the closed auction and payouts
    storage_c = StorageManager(data_dir=temp_node_dir)
    ledger_c = AuctionLedger.load(storage_c)

    assert ledger_c.finished
    assert ledger_c.deadline == T0 + 10
    assert ledger_c.commission_collected == 60
    assert ledger_c.get_deposit(BOB) == 0
    assert storage_c.get_payout_total(ALICE) == 525
    assert storage_c.get_payout_total(BOB) == 540

    with pytest.raises(AuctionClosed):
        ledger_c.place_bid(BOB, 10_000, T0 + 10)

    names = [name for name, _ in storage_c.load_events()]
    assert names == ["NewBid", "NewBid", "BidsRetrieve", "NewBid", "AuctionFinished", "BidsRetrieve"]


def test_failed_write_does_not_book_payout(temp_node_dir, monkeypatch):
    """A payout is only booked together with the debited deposit."""
    storage = StorageManager(data_dir=temp_node_dir)
    ledger = AuctionLedger(OWNER, T0, transfer=StoredTransfer(storage), storage_manager=storage)
    ledger.place_bid(ALICE, 1050, T0 + 1)
    ledger.place_bid(BOB, 1102, T0 + 2)

    def disk_full(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(storage.adapter, "persist_ledger_state", disk_full)
    with pytest.raises(OSError):
        ledger.withdraw(ALICE, T0 + 3)
    monkeypatch.undo()

    assert storage.get_payout_total(ALICE) == 0

    reloaded = AuctionLedger.load(storage, transfer=StoredTransfer(storage))
    assert reloaded.get_deposit(ALICE) == 1050
    assert reloaded.withdraw(ALICE, T0 + 4) == 1050

    assert storage.get_payout_total(ALICE) == 1050
    assert AuctionLedger.load(storage).get_deposit(ALICE) == 0


def test_load_does_not_log_creation(temp_node_dir, caplog):
    storage = StorageManager(data_dir=temp_node_dir)
    AuctionLedger(OWNER, T0, storage_manager=storage)

    caplog.clear()
    with caplog.at_level(logging.INFO, logger="ascend"):
        AuctionLedger.load(storage)

    messages = [record.getMessage() for record in caplog.records]
    assert not any("Auction created" in m for m in messages)
    assert any(m.startswith("Loaded auction") for m in messages)


def test_second_create_refused(temp_node_dir):
    storage = StorageManager(data_dir=temp_node_dir)
    AuctionLedger(OWNER, T0, storage_manager=storage)

    with pytest.raises(RuntimeError):
        AuctionLedger(OWNER, T0, storage_manager=storage)


def test_load_without_auction(temp_node_dir):
    with pytest.raises(RuntimeError):
        AuctionLedger.load(StorageManager(data_dir=temp_node_dir))
