"""
Trade record model and the canonical combined-file column order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List


# Combined dataset column order (LOCKED - downstream readers depend on it)
COMBINED_COLUMNS: List[str] = [
    "ticker",
    "strike",
    "expiry",
    "optionType",
    "volume",
    "premium",
    "openInterest",
    "bidAskSpread",
    "timestamp",
    "sweepType",
    "sourceFile",
]

DEFAULT_PREMIUM = "$0"


def format_number(value: float) -> str:
    """Render a number the way it is written to the combined file: 150 not 150.0."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class TradeRecord:
    """One validated, non-expired option or dark-pool alert."""

    ticker: str
    strike: float
    expiry: str
    option_type: str
    volume: int
    premium: str
    open_interest: int
    timestamp: str
    sweep_type: str
    source_file: str
    bid_ask_spread: int = 0

    def to_row(self) -> List[str]:
        """Values in COMBINED_COLUMNS order, as strings."""
        return [
            self.ticker,
            format_number(self.strike),
            self.expiry,
            self.option_type,
            str(self.volume),
            self.premium,
            str(self.open_interest),
            str(self.bid_ask_spread or 0),
            self.timestamp,
            self.sweep_type,
            self.source_file or "",
        ]
