"""
Auction notifications.

Events are observable output only; the ledger never reads them back.
"""

from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class NewBid:
    """A bid was accepted."""
    bidder: bytes
    amount: int


@dataclass(frozen=True)
class BidsRetrieve:
    """Funds were released to a bidder (withdrawal or bulk refund)."""
    recipient: bytes
    amount: int


@dataclass(frozen=True)
class AuctionFinished:
    """The owner closed the auction."""
    message: str


AuctionEvent = Union[NewBid, BidsRetrieve, AuctionFinished]
EventListener = Callable[[AuctionEvent], None]


def event_name(event: AuctionEvent) -> str:
    """Wire name of an event (used for storage and display)."""
    return type(event).__name__


def event_fields(event: AuctionEvent) -> dict:
    """Event payload as a plain dict."""
    if isinstance(event, NewBid):
        return {"bidder": event.bidder, "amount": event.amount}
    if isinstance(event, BidsRetrieve):
        return {"recipient": event.recipient, "amount": event.amount}
    return {"message": event.message}
