"""
Auction errors.

Every rejection is raised synchronously from the violating call, before any
ledger state has been touched. Nothing is retried internally.
"""

from typing import Optional


class AuctionError(Exception):
    """Base class for all ledger rejections."""


class Unauthorized(AuctionError):
    """Wrong principal for an owner-only or non-owner-only operation."""


class AuctionClosed(AuctionError):
    """The operation requires the auction to be open."""


class AuctionStillOpen(AuctionError):
    """The operation requires the auction to be closed."""


class InvalidAmount(AuctionError):
    """Zero, malformed, or insufficient bid amount."""


class NothingToWithdraw(AuctionError):
    """No positive refundable balance."""


class ReentrancyError(AuctionError):
    """A mutating call was made while another one was still in progress."""


class TransferFailed(AuctionError):
    """
    The value-transfer collaborator reported failure.

    Attributes:
        recipient: Principal the transfer was addressed to
        amount: Amount that failed to move
        index: Position in the bidder list (bulk refund only), usable as the
            ``start`` of the next refund call
    """

    def __init__(self, message: str, recipient: bytes, amount: int, index: Optional[int] = None):
        super().__init__(message)
        self.recipient = recipient
        self.amount = amount
        self.index = index


__all__ = [
    "AuctionError",
    "Unauthorized",
    "AuctionClosed",
    "AuctionStillOpen",
    "InvalidAmount",
    "NothingToWithdraw",
    "ReentrancyError",
    "TransferFailed",
]
