"""
Identity / Dedup Key Builder

Identity is trade economics plus the reporting timestamp:
ticker, strike, expiry, optionType, volume, premium, timestamp.

sweepType, openInterest, bidAskSpread and sourceFile are deliberately left
out, so the same trade reported by two different source files collapses to
one record (first seen wins).
"""

from .records import TradeRecord, format_number

KEY_SEPARATOR = "_"


def dedup_key(record: TradeRecord) -> str:
    return KEY_SEPARATOR.join([
        record.ticker,
        format_number(record.strike),
        record.expiry,
        record.option_type,
        str(record.volume),
        record.premium,
        record.timestamp,
    ])
