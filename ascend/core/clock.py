"""
Clock sources.

The ledger never reads the time itself; hosts pass ``now`` into every
time-gated call. These are the clocks the CLI and demos use.
"""

import time
from dataclasses import dataclass


class SystemClock:
    """Wall clock in whole unix seconds."""

    def now(self) -> int:
        return int(time.time())


@dataclass
class FixedClock:
    """Manually driven clock for scripted runs."""
    current: int = 0

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.current += seconds
        return self.current
