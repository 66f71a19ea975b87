import json
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ascend.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Auction metadata as a small key/value table.
    2. Ledger state:
       - Bids (append-only, ordered by sequence number)
       - Deposits (per principal, with first-bid order)
    3. Payouts booked by the CLI transfer backend.
    4. Event log.

    Amounts are stored as decimal TEXT; SQLite integers are 64-bit and
    bid values are not bounded by that.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. Auction metadata
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auction_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            # 2. Bid history (append-only)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bids (
                    seq INTEGER PRIMARY KEY,
                    bidder BLOB NOT NULL,
                    value TEXT NOT NULL
                )
            """)

            # 3. Escrow deposits
            # join_order preserves known-bidder insertion order
            conn.execute("""
                CREATE TABLE IF NOT EXISTS deposits (
                    principal BLOB PRIMARY KEY,
                    amount TEXT NOT NULL,
                    join_order INTEGER NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_deposit_order ON deposits(join_order);")

            # 4. Payout book
            conn.execute("""
                CREATE TABLE IF NOT EXISTS payouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    recipient BLOB NOT NULL,
                    amount TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_payout_recipient ON payouts(recipient);")

            # 5. Event log
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    payload TEXT NOT NULL
                )
            """)

    # =========================================================================
    # Metadata
    # =========================================================================

    def set_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute("INSERT OR REPLACE INTO auction_meta (key, value) VALUES (?, ?)", (key, value))

    def get_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM auction_meta WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    def get_all_meta(self) -> Dict[str, str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT key, value FROM auction_meta")
        return {row['key']: row['value'] for row in cursor.fetchall()}

    # =========================================================================
    # Ledger State
    # =========================================================================

    def persist_ledger_state(
        self,
        meta: Dict[str, str],
        new_bids: Iterable[Tuple[int, bytes, int]],
        deposits: Iterable[Tuple[bytes, int, int]],
        new_events: Iterable[Tuple[str, dict]],
        new_payouts: Iterable[Tuple[bytes, int]] = (),
    ):
        """
        Atomically write one committed ledger transition.

        Args:
            meta: Full metadata map (replaces existing keys)
            new_bids: (seq, bidder, value) rows not yet stored
            deposits: (principal, amount, join_order) rows for every known bidder
            new_events: (name, payload) pairs not yet stored
            new_payouts: (recipient, amount) transfers made by this transition
        """
        conn = self._get_conn()
        with conn:
            conn.executemany(
                "INSERT OR REPLACE INTO auction_meta (key, value) VALUES (?, ?)",
                list(meta.items())
            )
            conn.executemany(
                "INSERT OR IGNORE INTO bids (seq, bidder, value) VALUES (?, ?, ?)",
                [(seq, bidder, str(value)) for seq, bidder, value in new_bids]
            )
            conn.executemany(
                "INSERT OR REPLACE INTO deposits (principal, amount, join_order) VALUES (?, ?, ?)",
                [(p, str(amount), order) for p, amount, order in deposits]
            )
            conn.executemany(
                "INSERT INTO events (name, payload) VALUES (?, ?)",
                [(name, json.dumps(payload, sort_keys=True)) for name, payload in new_events]
            )
            conn.executemany(
                "INSERT INTO payouts (recipient, amount) VALUES (?, ?)",
                [(recipient, str(amount)) for recipient, amount in new_payouts]
            )

    def get_all_bids(self) -> List[Tuple[bytes, int]]:
        """Bids in insertion order."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT bidder, value FROM bids ORDER BY seq ASC")
        return [(bytes(row['bidder']), int(row['value'])) for row in cursor.fetchall()]

    def get_all_deposits(self) -> List[Tuple[bytes, int]]:
        """Deposits ordered by first-bid order."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT principal, amount FROM deposits ORDER BY join_order ASC")
        return [(bytes(row['principal']), int(row['amount'])) for row in cursor.fetchall()]

    def get_events(self) -> List[Tuple[str, dict]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT name, payload FROM events ORDER BY seq ASC")
        return [(row['name'], json.loads(row['payload'])) for row in cursor.fetchall()]

    # =========================================================================
    # Payouts
    # =========================================================================

    def get_payouts(self, recipient: Optional[bytes] = None) -> List[Tuple[bytes, int]]:
        conn = self._get_conn()
        if recipient is None:
            cursor = conn.execute("SELECT recipient, amount FROM payouts ORDER BY id ASC")
        else:
            cursor = conn.execute(
                "SELECT recipient, amount FROM payouts WHERE recipient = ? ORDER BY id ASC",
                (recipient,)
            )
        return [(bytes(row['recipient']), int(row['amount'])) for row in cursor.fetchall()]

    def close(self):
        """Close the connection owned by the current thread."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn
