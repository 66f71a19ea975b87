"""
Payments - Value transfer collaborators for the auction ledger.

The ledger decides *how much* to release and to whom; moving the value is
delegated to an object implementing ``ValueTransfer``. A transfer may fail
independently of ledger logic (returning False or raising), and it may call
back into the ledger before returning.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Set

from ascend.crypto import short_hex
from ascend.utils.logger import get_logger

logger = get_logger("payments")


class ValueTransfer(Protocol):
    """Host-provided value transfer."""

    def transfer(self, to: bytes, amount: int) -> bool:
        """Send `amount` to `to`. Returns True on success."""
        ...


@dataclass(frozen=True)
class Payout:
    """A completed transfer."""
    recipient: bytes
    amount: int


class InMemoryTransfer:
    """
    Transfer backend that credits an in-memory balance sheet.

    Attributes:
        balances: Total amount received per principal
        payouts: Ordered history of successful transfers
        failing: Principals whose transfers report failure
        on_transfer: Hook invoked before a transfer is booked; lets a
            recipient act (e.g. call back into the ledger) mid-transfer
    """

    def __init__(self, on_transfer: Optional[Callable[[bytes, int], None]] = None):
        self.balances: Dict[bytes, int] = defaultdict(int)
        self.payouts: List[Payout] = []
        self.failing: Set[bytes] = set()
        self.on_transfer = on_transfer

    def fail_for(self, principal: bytes) -> None:
        """Make every transfer to `principal` fail."""
        self.failing.add(principal)

    def transfer(self, to: bytes, amount: int) -> bool:
        if self.on_transfer:
            self.on_transfer(to, amount)

        if to in self.failing:
            logger.debug(f"Transfer to {short_hex(to)} rejected by recipient")
            return False

        self.balances[to] += amount
        self.payouts.append(Payout(recipient=to, amount=amount))
        return True

    def balance_of(self, principal: bytes) -> int:
        return self.balances.get(principal, 0)

    def total_paid(self) -> int:
        return sum(p.amount for p in self.payouts)


class StoredTransfer:
    """
    Transfer backend that books payouts into the SQLite store.

    Used by the CLI host, where the "recipient wallet" is just a row
    in the payouts table. Transfers are staged, not written: the ledger
    collects them with `take_staged()` and books them in the same
    transaction as the deposits they were debited from.
    """

    def __init__(self, storage_manager):
        self.storage_manager = storage_manager
        self.staged: List[Payout] = []

    def transfer(self, to: bytes, amount: int) -> bool:
        self.staged.append(Payout(recipient=to, amount=amount))
        logger.debug(f"Staged payout of {amount} to {short_hex(to)}")
        return True

    def take_staged(self) -> List[Payout]:
        """Hand over and forget the payouts staged since the last call."""
        staged, self.staged = self.staged, []
        return staged

    def balance_of(self, principal: bytes) -> int:
        return self.storage_manager.get_payout_total(principal)
