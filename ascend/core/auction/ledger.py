"""
Auction Ledger - State machine for a single ascending-price auction.

Conceptual Background:
---------------------
The ledger holds everything about one auction:

1. **Deadline**: Set at creation, pushed out by late bids, pulled in by
   the owner when closing early
2. **Highest Bid**: Starts as a sentinel owned by the ledger itself
3. **Bid History**: Append-only audit trail of every accepted bid
4. **Deposits**: Cumulative escrow per bidder, decremented on release
5. **Known Bidders**: Insertion-ordered set driving the bulk refund

Bid Admission:
-------------
A bid must clear the current highest value by the configured percentage
(increment rounded down). The owner may not bid.

Anti-Sniping:
------------
When a bid lands with no more than `extension_window` seconds left, the
deadline becomes `now + extension_window`.

Fund Release:
------------
- While open, any bidder withdraws everything except the funds backing
  their own leading bid.
- After close, the owner refunds losers in one or more batches, less a
  commission. The winning bid is never refunded.

Balances are debited before the external transfer is invoked and every
mutating call holds a re-entrancy guard, so a recipient calling back into
the ledger mid-transfer cannot observe a stale balance.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Set, Tuple

from ascend.core.auction.bid import Bid
from ascend.core.auction.errors import (
    AuctionClosed,
    AuctionError,
    AuctionStillOpen,
    InvalidAmount,
    NothingToWithdraw,
    ReentrancyError,
    TransferFailed,
    Unauthorized,
)
from ascend.core.auction.events import (
    AuctionEvent,
    AuctionFinished,
    BidsRetrieve,
    EventListener,
    NewBid,
)
from ascend.core.auction.snapshot import BidModel, LedgerSnapshot
from ascend.core.config import AuctionConfig
from ascend.core.payments import InMemoryTransfer, Payout, StoredTransfer, ValueTransfer
from ascend.crypto import bytes_to_hex, hex_to_bytes, ledger_address, short_hex
from ascend.utils.logger import get_logger
from ascend.utils.validation import (
    validate_amount,
    validate_integer,
    validate_principal,
    validate_timestamp,
)

if TYPE_CHECKING:
    from ascend.core.storage.storage_manager import StorageManager

logger = get_logger("ledger")


# =============================================================================
# Results
# =============================================================================


@dataclass
class RefundReport:
    """
    Outcome of one `refund_losers` batch.

    Pass `next_index` as the `start` of the following call until `done`.
    """
    start: int
    next_index: int
    total: int
    payouts: List[Payout] = field(default_factory=list)
    failed: List[bytes] = field(default_factory=list)
    commission: int = 0

    @property
    def done(self) -> bool:
        return self.next_index >= self.total

    @property
    def paid(self) -> int:
        return sum(p.amount for p in self.payouts)


# =============================================================================
# Auction Ledger
# =============================================================================


class AuctionLedger:
    """
    Single-asset ascending auction with escrow.

    Attributes:
        owner: Principal that created the auction
        address: The ledger's own principal (owner of the sentinel bid)
        deadline: Current closing time (unix seconds)
        highest_bid: Current leading bid
        bids: Every accepted bid, in order
        deposits: Escrowed amount per bidder
        known_bidders: Bidders in order of their first accepted bid
        finished: Whether the owner has closed the auction
        commission_collected: Total commission retained by bulk refunds
    """

    def __init__(
        self,
        owner: bytes,
        now: int,
        config: Optional[AuctionConfig] = None,
        transfer: Optional[ValueTransfer] = None,
        storage_manager: Optional["StorageManager"] = None,
    ):
        """
        Create an auction owned by `owner`.

        Args:
            owner: Creator's principal
            now: Creation time; deadline is now + auction_duration
            config: Auction parameters. None = defaults.
            transfer: Value transfer backend. None = in-memory.
            storage_manager: Persistence manager. None = in-memory only.
        """
        _require_principal(owner, "owner")
        _require_timestamp(now)

        self._init_state(owner, now, config, transfer)

        if storage_manager:
            if storage_manager.has_ledger():
                raise RuntimeError("Storage already holds an auction; use AuctionLedger.load()")
            self.storage_manager = storage_manager
            self._persist([])

        logger.info(
            f"Auction created by {short_hex(owner)}: deadline={self.deadline}, "
            f"base={self.config.base_bid}, window={self.config.extension_window}s"
        )

    def _init_state(
        self,
        owner: bytes,
        now: int,
        config: Optional[AuctionConfig],
        transfer: Optional[ValueTransfer],
    ) -> None:
        self.config = config or AuctionConfig()
        self.transfer = transfer if transfer is not None else InMemoryTransfer()

        self.owner = owner
        self.created_at = now
        self.address = ledger_address(owner, now)
        self.deadline = now + self.config.auction_duration

        # Bidding state
        self.highest_bid = Bid(bidder=self.address, value=self.config.base_bid)
        self.bids: List[Bid] = []

        # Escrow
        self.deposits: Dict[bytes, int] = {}
        self.known_bidders: List[bytes] = []
        self._known: Set[bytes] = set()

        self.finished = False
        self.commission_collected = 0

        # Notifications
        self.events: List[AuctionEvent] = []
        self._listeners: List[EventListener] = []

        # Re-entrancy guard
        self._entered = False

        # Persistence
        self.storage_manager: Optional["StorageManager"] = None
        self._persisted_bids = 0

    # =========================================================================
    # State Access
    # =========================================================================

    def is_open(self, now: int) -> bool:
        """Whether bids and withdrawals are accepted at `now`."""
        return not self.finished and now <= self.deadline

    def time_remaining(self, now: int) -> int:
        """Seconds until the deadline (0 once closed)."""
        if not self.is_open(now):
            return 0
        return self.deadline - now

    def minimum_next_bid(self) -> int:
        """Smallest amount the next bid must reach."""
        return max(1, self.config.minimum_raise(self.highest_bid.value))

    def get_highest_bid(self) -> Bid:
        """Current leading bid (the sentinel if nobody has bid yet)."""
        return self.highest_bid

    def get_bids(self) -> Tuple[Bid, ...]:
        """Snapshot of the full bid history."""
        return tuple(self.bids)

    def get_winner(self, now: int) -> Bid:
        """
        Winning bid.

        Raises:
            AuctionStillOpen: if called before the auction has closed
        """
        _require_timestamp(now)
        if self.is_open(now):
            raise self._reject(AuctionStillOpen(f"Auction open until {self.deadline}"))
        return self.highest_bid

    def get_deposit(self, principal: bytes) -> int:
        """Escrowed amount for `principal`."""
        return self.deposits.get(principal, 0)

    def get_known_bidders(self) -> Tuple[bytes, ...]:
        return tuple(self.known_bidders)

    def refundable(self, principal: bytes) -> int:
        """
        Amount `principal` could currently get back.

        The leader's deposit keeps the funds of the leading bid.
        """
        amount = self.deposits.get(principal, 0)
        if principal == self.highest_bid.bidder:
            amount -= self.highest_bid.value
        return amount

    # =========================================================================
    # Notifications
    # =========================================================================

    def subscribe(self, listener: EventListener) -> None:
        """Deliver every committed event to `listener`."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    # =========================================================================
    # Bidding
    # =========================================================================

    def place_bid(self, caller: bytes, amount: int, now: int) -> Bid:
        """
        Place a bid.

        Args:
            caller: Bidding principal
            amount: Value sent with the bid
            now: Current time

        Returns:
            The recorded bid

        Raises:
            AuctionClosed: deadline passed or auction closed by owner
            Unauthorized: the owner tried to bid
            InvalidAmount: zero amount or below the minimum increment
        """
        _require_principal(caller, "caller")
        _require_timestamp(now)

        with self._operation("place_bid") as pending:
            if not self.is_open(now):
                raise self._reject(AuctionClosed(f"Auction closed at {self.deadline}"))

            if caller == self.owner:
                raise self._reject(Unauthorized("Owner cannot bid"))

            valid, error = validate_amount(amount)
            if not valid:
                raise self._reject(InvalidAmount(error))

            if amount <= 0:
                raise self._reject(InvalidAmount("Bid amount must be positive"))

            required = self.config.minimum_raise(self.highest_bid.value)
            if amount < required:
                raise self._reject(InvalidAmount(f"Bid {amount} below minimum {required}"))

            bid = Bid(bidder=caller, value=amount)
            first_bid = caller not in self._known
            deposit = self.deposits.get(caller, 0) + amount
            extend = self.deadline - now <= self.config.extension_window

            self.bids.append(bid)
            self.highest_bid = bid
            if first_bid:
                self._known.add(caller)
                self.known_bidders.append(caller)
            self.deposits[caller] = deposit

            if extend:
                previous = self.deadline
                self.deadline = now + self.config.extension_window
                logger.info(f"Deadline extended: {previous} -> {self.deadline}")

            pending.append(NewBid(bidder=caller, amount=amount))
            logger.debug(f"Bid accepted: bidder={short_hex(caller)}, amount={amount}")
            return bid

    # =========================================================================
    # Fund Release
    # =========================================================================

    def withdraw(self, caller: bytes, now: int) -> int:
        """
        Withdraw escrowed funds while the auction is open.

        The leader can only withdraw what exceeds their leading bid.

        Returns:
            Amount released

        Raises:
            AuctionClosed: auction no longer open
            Unauthorized: the owner tried to withdraw
            NothingToWithdraw: no positive refundable balance
            TransferFailed: transfer failed (strict mode; balance restored)
        """
        _require_principal(caller, "caller")
        _require_timestamp(now)

        with self._operation("withdraw") as pending:
            if not self.is_open(now):
                raise self._reject(AuctionClosed(f"Auction closed at {self.deadline}"))

            if caller == self.owner:
                raise self._reject(Unauthorized("Owner has no escrow to withdraw"))

            refundable = self.refundable(caller)
            if refundable <= 0:
                raise self._reject(NothingToWithdraw(f"Nothing to withdraw for {short_hex(caller)}"))

            self.deposits[caller] -= refundable

            ok, error = self._send(caller, refundable)
            if not ok:
                if self.config.strict_transfers:
                    self.deposits[caller] += refundable
                    logger.error(f"Withdrawal of {refundable} to {short_hex(caller)} failed: {error}")
                    raise TransferFailed(f"Withdrawal transfer failed: {error}", caller, refundable)
                logger.error(f"Withdrawal of {refundable} to {short_hex(caller)} lost: {error}")

            pending.append(BidsRetrieve(recipient=caller, amount=refundable))
            logger.info(f"Withdrawal: {short_hex(caller)} retrieved {refundable}")
            return refundable

    # =========================================================================
    # Settlement
    # =========================================================================

    def close_auction(self, caller: bytes, now: int) -> None:
        """
        Close the auction at `now`, before or after the natural deadline.

        Raises:
            Unauthorized: caller is not the owner
            AuctionClosed: auction was already closed by the owner
        """
        _require_principal(caller, "caller")
        _require_timestamp(now)

        with self._operation("close_auction") as pending:
            if caller != self.owner:
                raise self._reject(Unauthorized("Only the owner can close the auction"))

            if self.finished:
                raise self._reject(AuctionClosed("Auction already closed"))

            self.deadline = now
            self.finished = True

            winner = self.highest_bid
            if winner.bidder == self.address:
                message = "Auction finished with no bids"
            else:
                message = f"Auction finished: winner {bytes_to_hex(winner.bidder)} with {winner.value}"

            pending.append(AuctionFinished(message=message))
            logger.info(message)

    def refund_losers(
        self,
        caller: bytes,
        now: int,
        start: int = 0,
        batch_size: Optional[int] = None,
    ) -> RefundReport:
        """
        Refund every non-winning balance, less commission.

        Processes `known_bidders[start:start + batch_size]` (all remaining
        bidders when `batch_size` is None). Bidders with nothing refundable
        are skipped, so re-running a range is harmless.

        Returns:
            RefundReport; continue from `report.next_index` until `report.done`

        Raises:
            Unauthorized: caller is not the owner
            AuctionStillOpen: auction has not closed yet
            TransferFailed: a payout failed (strict mode). Earlier payouts in
                the batch stand; `exc.index` is where to resume.
        """
        _require_principal(caller, "caller")
        _require_timestamp(now)

        with self._operation("refund_losers") as pending:
            if caller != self.owner:
                raise self._reject(Unauthorized("Only the owner can refund bidders"))

            if self.is_open(now):
                raise self._reject(AuctionStillOpen(f"Auction open until {self.deadline}"))

            valid, error = validate_integer(start, "start", 0, len(self.known_bidders))
            if valid and batch_size is not None:
                valid, error = validate_integer(batch_size, "batch_size", 1)
            if not valid:
                raise ValueError(error)

            total = len(self.known_bidders)
            end = total if batch_size is None else min(total, start + batch_size)
            report = RefundReport(start=start, next_index=end, total=total)

            for index in range(start, end):
                principal = self.known_bidders[index]
                amount = self.refundable(principal)
                if amount <= 0:
                    continue

                commission = self.config.commission_on(amount)
                net = amount - commission

                self.deposits[principal] -= amount

                ok, error = self._send(principal, net) if net > 0 else (True, "")
                if not ok:
                    if self.config.strict_transfers:
                        self.deposits[principal] += amount
                        report.next_index = index
                        logger.error(
                            f"Refund batch halted at index {index}: "
                            f"{len(report.payouts)} paid before failure"
                        )
                        raise TransferFailed(
                            f"Refund transfer failed: {error}", principal, net, index=index
                        )
                    logger.error(f"Refund of {net} to {short_hex(principal)} lost: {error}")
                    report.failed.append(principal)
                else:
                    report.payouts.append(Payout(recipient=principal, amount=net))

                self.commission_collected += commission
                report.commission += commission
                pending.append(BidsRetrieve(recipient=principal, amount=net))

            logger.info(
                f"Refunded bidders [{start}:{end}] of {total}: "
                f"{len(report.payouts)} payouts, {report.paid} paid, commission={report.commission}"
            )
            return report

    def refund_all(self, caller: bytes, now: int, batch_size: int = 50) -> List[RefundReport]:
        """Run `refund_losers` batch by batch until every bidder is processed."""
        reports = []
        start = 0
        while True:
            report = self.refund_losers(caller, now, start=start, batch_size=batch_size)
            reports.append(report)
            if report.done:
                return reports
            start = report.next_index

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _operation(self, name: str) -> Iterator[List[AuctionEvent]]:
        """
        Serialize a mutating call.

        Events appended to the yielded list are committed (stored and
        delivered) once the call exits, including when it exits by raising
        after some effects already happened.
        """
        if self._entered:
            raise self._reject(ReentrancyError(f"{name} called while another operation is in progress"))

        self._entered = True
        pending: List[AuctionEvent] = []
        try:
            yield pending
        finally:
            self._entered = False
            if pending:
                self._commit(pending)

    def _send(self, to: bytes, amount: int) -> Tuple[bool, str]:
        """Invoke the transfer collaborator. A raising transfer is a failed one."""
        try:
            ok = self.transfer.transfer(to, amount)
        except Exception as exc:
            return False, f"{type(exc).__name__}: {exc}"
        if not ok:
            return False, "transfer reported failure"
        return True, ""

    def _reject(self, error: AuctionError) -> AuctionError:
        logger.warning(f"Rejected: {type(error).__name__}: {error}")
        return error

    def _commit(self, events: List[AuctionEvent]) -> None:
        self.events.extend(events)

        if self.storage_manager:
            self._persist(events)

        for event in events:
            for listener in list(self._listeners):
                listener(event)

    # =========================================================================
    # Persistence
    # =========================================================================

    def _meta(self) -> Dict[str, str]:
        meta = {
            "owner": bytes_to_hex(self.owner),
            "address": bytes_to_hex(self.address),
            "created_at": str(self.created_at),
            "deadline": str(self.deadline),
            "finished": "1" if self.finished else "0",
            "commission_collected": str(self.commission_collected),
        }
        for name in AuctionConfig.__dataclass_fields__:
            value = getattr(self.config, name)
            meta[f"config.{name}"] = str(int(value))
        return meta

    def _persist(self, events: List[AuctionEvent]) -> None:
        """Write the current state, plus payouts staged since the last write."""
        new_bids = [
            (seq, bid.bidder, bid.value)
            for seq, bid in enumerate(self.bids)
            if seq >= self._persisted_bids
        ]
        deposits = [
            (principal, self.deposits.get(principal, 0), order)
            for order, principal in enumerate(self.known_bidders)
        ]
        payouts = []
        if isinstance(self.transfer, StoredTransfer):
            payouts = [(p.recipient, p.amount) for p in self.transfer.take_staged()]
        self.storage_manager.persist_ledger_update(self._meta(), new_bids, deposits, events, payouts)
        self._persisted_bids = len(self.bids)

    @classmethod
    def load(
        cls,
        storage_manager: "StorageManager",
        transfer: Optional[ValueTransfer] = None,
    ) -> "AuctionLedger":
        """
        Rebuild a ledger from storage.

        Args:
            storage_manager: Store holding a previously created auction
            transfer: Value transfer backend for further operations

        Returns:
            AuctionLedger attached to `storage_manager`
        """
        if not storage_manager.has_ledger():
            raise RuntimeError("No auction found in storage")

        meta, bids, deposits = storage_manager.load_ledger_state()

        config_values = {}
        for name, f in AuctionConfig.__dataclass_fields__.items():
            raw = meta.get(f"config.{name}")
            if raw is None:
                continue
            config_values[name] = bool(int(raw)) if f.type in (bool, "bool") else int(raw)

        ledger = cls.__new__(cls)
        ledger._init_state(
            hex_to_bytes(meta["owner"]),
            int(meta["created_at"]),
            AuctionConfig(**config_values),
            transfer,
        )
        ledger.deadline = int(meta["deadline"])
        ledger.finished = meta["finished"] == "1"
        ledger.commission_collected = int(meta["commission_collected"])

        ledger.bids = [Bid(bidder=bidder, value=value) for bidder, value in bids]
        if ledger.bids:
            ledger.highest_bid = ledger.bids[-1]

        for principal, amount in deposits:
            ledger.deposits[principal] = amount
            ledger.known_bidders.append(principal)
            ledger._known.add(principal)

        ledger.storage_manager = storage_manager
        ledger._persisted_bids = len(ledger.bids)

        logger.info(f"Loaded auction: {len(ledger.bids)} bids, {len(ledger.known_bidders)} bidders")
        return ledger

    # =========================================================================
    # Utility
    # =========================================================================

    def snapshot(self, now: Optional[int] = None) -> LedgerSnapshot:
        """Serializable view of the current state."""
        return LedgerSnapshot(
            address=bytes_to_hex(self.address),
            owner=bytes_to_hex(self.owner),
            created_at=self.created_at,
            deadline=self.deadline,
            finished=self.finished,
            is_open=self.is_open(now) if now is not None else None,
            highest_bid=BidModel(bidder=bytes_to_hex(self.highest_bid.bidder), value=self.highest_bid.value),
            bids=[BidModel(bidder=bytes_to_hex(b.bidder), value=b.value) for b in self.bids],
            deposits={bytes_to_hex(p): self.deposits.get(p, 0) for p in self.known_bidders},
            known_bidders=[bytes_to_hex(p) for p in self.known_bidders],
            commission_collected=self.commission_collected,
        )

    def stats(self) -> dict:
        """Get ledger statistics."""
        return {
            "bid_count": len(self.bids),
            "bidder_count": len(self.known_bidders),
            "highest_bid": self.highest_bid.value,
            "deadline": self.deadline,
            "finished": self.finished,
            "total_escrowed": sum(self.deposits.values()),
            "commission_collected": self.commission_collected,
        }

    def __repr__(self) -> str:
        return (
            f"AuctionLedger(bids={len(self.bids)}, highest={self.highest_bid.value}, "
            f"deadline={self.deadline}, finished={self.finished})"
        )


# =============================================================================
# Helpers
# =============================================================================


def _require_principal(principal, name: str) -> None:
    valid, error = validate_principal(principal, name)
    if not valid:
        raise ValueError(error)


def _require_timestamp(now) -> None:
    valid, error = validate_timestamp(now)
    if not valid:
        raise ValueError(error)
