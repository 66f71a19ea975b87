"""
End-to-end auction scenario.

Base B = 1000. Alice bids B*1.05, Bob undercuts and is rejected, Bob then
outbids. Alice stays fully withdrawable. The owner closes and refunds:
Alice receives her deposit less commission, Bob (the winner) nothing.
"""

import pytest

from ascend.core.auction import AuctionLedger, AuctionStillOpen, InvalidAmount, NewBid
from ascend.core.clock import FixedClock
from ascend.core.config import AuctionConfig
from ascend.core.payments import InMemoryTransfer
from ascend.crypto import generate_keypair


@pytest.fixture
def principals():
    return {name: generate_keypair().address for name in ("owner", "alice", "bob")}


@pytest.fixture
def clock():
    return FixedClock(1_700_000_000)


def test_full_auction(principals, clock):
    owner, alice, bob = principals["owner"], principals["alice"], principals["bob"]
    base = 1000
    transfer = InMemoryTransfer()
    ledger = AuctionLedger(owner, clock.now(), config=AuctionConfig(base_bid=base), transfer=transfer)

    # Alice opens at the minimum
    alice_bid = base * 105 // 100
    ledger.place_bid(alice, alice_bid, clock.advance(60))
    assert ledger.get_highest_bid().bidder == alice

    # Bob undercuts the increment
    required = alice_bid + alice_bid * 5 // 100
    with pytest.raises(InvalidAmount):
        ledger.place_bid(bob, required - 1, clock.advance(60))
    assert ledger.get_highest_bid().bidder == alice

    # Bob outbids
    ledger.place_bid(bob, required, clock.advance(60))
    assert ledger.get_highest_bid().bidder == bob
    assert ledger.refundable(alice) == alice_bid
    assert ledger.refundable(bob) == 0

    # Winner is hidden until close
    with pytest.raises(AuctionStillOpen):
        ledger.get_winner(clock.now())

    ledger.close_auction(owner, clock.advance(60))
    report = ledger.refund_losers(owner, clock.advance(1))

    commission = alice_bid * 5 // 100
    assert transfer.balance_of(alice) == alice_bid - commission
    assert transfer.balance_of(bob) == 0
    assert report.commission == commission
    assert ledger.get_winner(clock.now()).bidder == bob
    assert ledger.get_deposit(alice) == 0
    assert ledger.get_deposit(bob) == required

    assert [e for e in ledger.events if isinstance(e, NewBid)] == [
        NewBid(alice, alice_bid),
        NewBid(bob, required),
    ]


def test_sniping_war_then_natural_expiry(principals, clock):
    """Late bids keep the auction alive; it ends on its own once quiet."""
    owner, alice, bob = principals["owner"], principals["alice"], principals["bob"]
    config = AuctionConfig(auction_duration=1000, extension_window=100)
    ledger = AuctionLedger(owner, clock.now(), config=config)

    clock.current = ledger.deadline - 1
    for bidder in (alice, bob, alice, bob):
        ledger.place_bid(bidder, ledger.minimum_next_bid(), clock.now())
        assert ledger.deadline == clock.now() + 100
        clock.advance(99)

    clock.current = ledger.deadline + 1
    assert not ledger.is_open(clock.now())
    assert ledger.get_winner(clock.now()).bidder == bob

    reports = ledger.refund_all(owner, clock.now(), batch_size=1)
    assert reports[-1].done
    assert ledger.transfer.balance_of(alice) > 0
    assert ledger.transfer.balance_of(bob) > 0  # Bob's first bid is refundable
