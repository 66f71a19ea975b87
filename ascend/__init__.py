"""
Ascend - Ascending-price auction ledger.

A single-asset English auction with:
- Minimum-increment bid admission
- Anti-sniping deadline extension
- Per-bidder escrow with self-service withdrawal
- Owner-driven bulk refund with commission
"""

__version__ = "0.1.0"
