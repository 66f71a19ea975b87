from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ascend.core.auction.events import AuctionEvent, event_fields, event_name
from ascend.core.storage.sqlite_adapter import SQLiteAdapter
from ascend.crypto import bytes_to_hex
from ascend.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager:
    """
    Manages persistent storage for an auction.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Auction metadata (owner, deadline, sentinel bid, config)
    - Ledger state (bid history, deposits, bidder order)
    - Payout book and event log
    """

    def __init__(self, data_dir: Path, db_name: str = "auction.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Ledger State
    # =========================================================================

    def has_ledger(self) -> bool:
        """Whether an auction has already been created in this store."""
        return self.adapter.get_meta("owner") is not None

    def persist_ledger_update(
        self,
        meta: Dict[str, str],
        new_bids: Sequence[Tuple[int, bytes, int]],
        deposits: Sequence[Tuple[bytes, int, int]],
        new_events: Sequence[AuctionEvent],
        new_payouts: Sequence[Tuple[bytes, int]] = (),
    ):
        """
        Atomically persist one committed ledger transition.

        Payouts made by the transition are booked in the same transaction
        as the debited deposits.
        """
        encoded_events = []
        for event in new_events:
            payload = {
                k: bytes_to_hex(v) if isinstance(v, bytes) else v
                for k, v in event_fields(event).items()
            }
            encoded_events.append((event_name(event), payload))

        self.adapter.persist_ledger_state(meta, new_bids, deposits, encoded_events, new_payouts)

    def load_ledger_state(self) -> Tuple[Dict[str, str], List[Tuple[bytes, int]], List[Tuple[bytes, int]]]:
        """
        Load full ledger state.

        Returns:
            (meta, bids, deposits)
            meta: Dict[str, str]
            bids: List[(bidder, value)] in insertion order
            deposits: List[(principal, amount)] in first-bid order
        """
        meta = self.adapter.get_all_meta()
        bids = self.adapter.get_all_bids()
        deposits = self.adapter.get_all_deposits()
        return meta, bids, deposits

    def load_events(self) -> List[Tuple[str, dict]]:
        return self.adapter.get_events()

    # =========================================================================
    # Payouts
    # =========================================================================

    def get_payout_total(self, recipient: bytes) -> int:
        return sum(amount for _, amount in self.adapter.get_payouts(recipient))

    def get_payouts(self, recipient: Optional[bytes] = None) -> List[Tuple[bytes, int]]:
        return self.adapter.get_payouts(recipient)

    def close(self):
        self.adapter.close()
