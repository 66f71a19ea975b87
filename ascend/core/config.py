"""
Auction configuration parameters for Ascend.

Defines the fixed economic and timing rules of an auction. Values are
bound once at ledger creation and never change afterwards.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

ENV_PREFIX = "ASCEND_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AuctionConfig:
    """Auction-wide configuration parameters"""

    # Bidding rules
    base_bid: int = 1000                # Sentinel value the first bid must clear
    min_increment_percent: int = 5      # Minimum raise over the current highest bid

    # Timing (seconds)
    auction_duration: int = 86_400      # Initial deadline offset from creation
    extension_window: int = 600         # Anti-sniping window

    # Settlement
    commission_percent: int = 5         # Taken from every bulk refund payout
    strict_transfers: bool = True       # Fail the call when a transfer fails

    def __post_init__(self):
        """Reject out-of-range parameters"""
        for name in ("base_bid", "auction_duration", "extension_window"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{name} must be a non-negative int, got {value!r}")

        for name in ("min_increment_percent", "commission_percent"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 100:
                raise ValueError(f"{name} must be an int in [0, 100], got {value!r}")

    def minimum_raise(self, value: int) -> int:
        """Smallest admissible bid over `value` (increment rounded down)."""
        return value + value * self.min_increment_percent // 100

    def commission_on(self, amount: int) -> int:
        """Commission taken from a refund of `amount` (rounded down)."""
        return amount * self.commission_percent // 100


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}") from None


def load_config(config_path: Optional[str] = None) -> AuctionConfig:
    """
    Load configuration from a dotenv file and the environment.

    Keys are the field names upper-cased with an ``ASCEND_`` prefix, e.g.
    ``ASCEND_EXTENSION_WINDOW=300``. Process environment wins over the file.

    Args:
        config_path: Optional path to a dotenv file. Defaults to ./.env
            when present.

    Returns:
        AuctionConfig instance
    """
    path = Path(config_path) if config_path else Path(".env")
    if config_path and not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    values = {}
    if path.exists():
        values.update({k: v for k, v in dotenv_values(path).items() if v is not None})
    values.update(os.environ)

    overrides = {}
    for name, field in AuctionConfig.__dataclass_fields__.items():
        raw = values.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        if field.type in (bool, "bool"):
            overrides[name] = _parse_bool(name, raw)
        else:
            overrides[name] = _parse_int(name, raw)

    return AuctionConfig(**overrides)
