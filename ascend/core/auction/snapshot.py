"""
Snapshot models - Serializable view of ledger state.

Principals are rendered as 0x-prefixed hex so snapshots can be dumped to
JSON and read back by tooling outside the process.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ascend.utils.validation import validate_hex_string, ADDRESS_SIZE


def _check_address(value: str) -> str:
    valid, error = validate_hex_string(value, "address", ADDRESS_SIZE)
    if not valid:
        raise ValueError(error)
    return value.lower()


class BidModel(BaseModel):
    """A recorded bid."""
    bidder: str
    value: int = Field(ge=0)

    @field_validator("bidder")
    @classmethod
    def _bidder_is_address(cls, value: str) -> str:
        return _check_address(value)


class LedgerSnapshot(BaseModel):
    """Point-in-time view of an auction ledger."""
    address: str
    owner: str
    created_at: int
    deadline: int
    finished: bool
    is_open: Optional[bool] = None
    highest_bid: BidModel
    bids: List[BidModel]
    deposits: Dict[str, int]
    known_bidders: List[str]
    commission_collected: int = 0

    @field_validator("address", "owner")
    @classmethod
    def _principal_is_address(cls, value: str) -> str:
        return _check_address(value)

    @field_validator("known_bidders")
    @classmethod
    def _bidders_are_addresses(cls, value: List[str]) -> List[str]:
        return [_check_address(v) for v in value]
