"""Bid record."""

from dataclasses import dataclass

from ascend.crypto import bytes_to_hex


@dataclass(frozen=True)
class Bid:
    """
    An accepted bid. Immutable once recorded.

    The sentinel bid is a Bid owned by the ledger's own address.
    """
    bidder: bytes
    value: int

    def __repr__(self) -> str:
        return f"Bid(bidder={bytes_to_hex(self.bidder)[:10]}..., value={self.value})"
