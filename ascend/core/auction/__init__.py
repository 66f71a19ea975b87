"""
Ascend Auction Module.

This module provides the auction ledger:
- Bid admission with minimum increment
- Anti-sniping deadline extension
- Escrow, withdrawal and bulk refund
- Notifications and snapshots
"""

from ascend.core.auction.bid import Bid

from ascend.core.auction.errors import (
    AuctionError,
    Unauthorized,
    AuctionClosed,
    AuctionStillOpen,
    InvalidAmount,
    NothingToWithdraw,
    ReentrancyError,
    TransferFailed,
)

from ascend.core.auction.events import (
    NewBid,
    BidsRetrieve,
    AuctionFinished,
    AuctionEvent,
)

from ascend.core.auction.ledger import AuctionLedger, RefundReport
from ascend.core.auction.snapshot import BidModel, LedgerSnapshot

__all__ = [
    # Ledger
    "AuctionLedger",
    "RefundReport",
    "Bid",
    # Errors
    "AuctionError",
    "Unauthorized",
    "AuctionClosed",
    "AuctionStillOpen",
    "InvalidAmount",
    "NothingToWithdraw",
    "ReentrancyError",
    "TransferFailed",
    # Events
    "NewBid",
    "BidsRetrieve",
    "AuctionFinished",
    "AuctionEvent",
    # Snapshots
    "BidModel",
    "LedgerSnapshot",
]
