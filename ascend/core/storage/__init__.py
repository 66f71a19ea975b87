"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Auction metadata (owner, deadline, sentinel, config)
- Bid history and escrow deposits
- Payout book and event log
"""

from ascend.core.storage.sqlite_adapter import SQLiteAdapter
from ascend.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
