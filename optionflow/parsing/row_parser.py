"""
Row Parser

Turns one raw alert CSV line into a TradeRecord or rejects it.

Contract:
- Fields are split on commas outside double quotes (a quote toggles the
  "inside field" state and is not kept)
- Lines with fewer than MIN_RAW_FIELDS fields are rejected
- Field positions come from the Format Disambiguator
- strike falls back to 0 when unparseable; volume / openInterest fall back
  to 0 after thousands separators are stripped
- A record must have a valid ticker, strike > 0, an expiry, an option type,
  volume > 0, and must not be expired at the reference instant
- Nothing raised while handling a line escapes: the line is skipped
"""

import re
import logging
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from ..config import (
    MAX_TICKER_LENGTH,
    MIN_COMBINED_FIELDS,
    MIN_RAW_FIELDS,
    RESERVED_TICKER_WORDS,
)
from .expiry import is_expired
from .layout import (
    EXPIRY_INDEX,
    OPEN_INTEREST_INDEX,
    OPTION_TYPE_INDEX,
    PREMIUM_INDEX,
    STRIKE_INDEX,
    SWEEP_TYPE_INDEX,
    TICKER_INDEX,
    VOLUME_INDEX,
    detect_layout,
    field_at,
    resolve_timestamp,
)
from .records import COMBINED_COLUMNS, DEFAULT_PREMIUM, TradeRecord

logger = logging.getLogger(__name__)

# Rejection reasons reported alongside a skipped row
REJECT_MALFORMED = "malformed"
REJECT_INVALID = "invalid"
REJECT_EXPIRED = "expired"

_TICKER_PATTERN = re.compile(r"^[A-Z0-9]+$")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

COMBINED_HEADER = ",".join(COMBINED_COLUMNS)


# ============================================================
# Field helpers
# ============================================================

def split_csv_line(line: str) -> List[str]:
    """Split on commas that are not inside double quotes. Quotes are dropped."""
    fields = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)

    fields.append("".join(current))
    return fields


def parse_int(value: Optional[str]) -> int:
    """Leading integer after stripping thousands separators; 0 when there is none."""
    if not value:
        return 0
    match = _INT_PREFIX.match(value.replace(",", ""))
    return int(match.group(1)) if match else 0


def parse_float(value: Optional[str]) -> float:
    """Leading decimal number; 0.0 when there is none."""
    if not value:
        return 0.0
    match = _FLOAT_PREFIX.match(value)
    return float(match.group(1)) if match else 0.0


def is_valid_ticker(ticker: str) -> bool:
    """
    1-10 uppercase alphanumerics, not purely numeric, not a reserved word.

    The reserved-word check ignores case so header fragments such as "BID"
    are rejected along with "Bid".
    """
    if not ticker or len(ticker) > MAX_TICKER_LENGTH:
        return False
    if ticker.upper() in RESERVED_TICKER_WORDS:
        return False
    if ticker.isdigit() or " " in ticker:
        return False
    return bool(_TICKER_PATTERN.match(ticker))


# ============================================================
# Raw alert rows
# ============================================================

def evaluate_row(
    line: str,
    source_file: str,
    now: Optional[datetime] = None,
    market_timezone: Optional[str] = None,
) -> Tuple[Optional[TradeRecord], Optional[str]]:
    """
    Parse one raw line.

    Returns:
        (record, None) for an accepted row, or (None, reason) where reason is
        one of REJECT_MALFORMED, REJECT_INVALID, REJECT_EXPIRED.
    """
    try:
        fields = split_csv_line(line)
        if len(fields) < MIN_RAW_FIELDS:
            return None, REJECT_MALFORMED

        layout = detect_layout(fields)

        ticker = field_at(fields, TICKER_INDEX)
        strike = parse_float(field_at(fields, STRIKE_INDEX))
        expiry = field_at(fields, EXPIRY_INDEX)
        option_type = field_at(fields, OPTION_TYPE_INDEX)
        volume = parse_int(field_at(fields, VOLUME_INDEX))

        if not (is_valid_ticker(ticker) and strike > 0 and expiry and option_type and volume > 0):
            return None, REJECT_INVALID

        if is_expired(expiry, now, market_timezone):
            return None, REJECT_EXPIRED

        record = TradeRecord(
            ticker=ticker,
            strike=strike,
            expiry=expiry,
            option_type=option_type,
            volume=volume,
            premium=field_at(fields, PREMIUM_INDEX) or DEFAULT_PREMIUM,
            open_interest=parse_int(field_at(fields, OPEN_INTEREST_INDEX)),
            timestamp=resolve_timestamp(fields, layout),
            sweep_type=field_at(fields, SWEEP_TYPE_INDEX),
            source_file=source_file,
        )
        return record, None
    except Exception as e:
        logger.debug(f"Skipping unparseable line in {source_file}: {e}")
        return None, REJECT_MALFORMED


def parse_row(
    line: str,
    source_file: str,
    now: Optional[datetime] = None,
    market_timezone: Optional[str] = None,
) -> Optional[TradeRecord]:
    """Parse one raw line into a TradeRecord, or None if the line is skipped."""
    record, _ = evaluate_row(line, source_file, now, market_timezone)
    return record


def iter_data_lines(text: str) -> Iterator[str]:
    """Non-empty, stripped lines after the header row."""
    for raw in text.split("\n")[1:]:
        line = raw.strip()
        if line:
            yield line


# ============================================================
# Combined-file rows
# ============================================================

def record_from_combined(fields: List[str]) -> Optional[TradeRecord]:
    """
    Rebuild a TradeRecord from one combined-file row (COMBINED_COLUMNS order).

    Values are taken verbatim; bidAskSpread round-trips unchanged.
    """
    if len(fields) < MIN_COMBINED_FIELDS:
        return None
    return TradeRecord(
        ticker=fields[0],
        strike=parse_float(fields[1]),
        expiry=fields[2],
        option_type=fields[3],
        volume=parse_int(fields[4]),
        premium=fields[5],
        open_interest=parse_int(fields[6]),
        bid_ask_spread=parse_int(fields[7]),
        timestamp=fields[8],
        sweep_type=fields[9],
        source_file=fields[10] or "",
    )


def is_combined_text(text: str) -> bool:
    """True when the first line is the combined dataset header."""
    first_line = text.split("\n", 1)[0].strip()
    return first_line == COMBINED_HEADER


def parse_csv_text(
    text: str,
    source_file: str,
    now: Optional[datetime] = None,
    market_timezone: Optional[str] = None,
) -> List[TradeRecord]:
    """Parse a whole raw file body (header row first). Rejected rows are dropped."""
    records = []
    for line in iter_data_lines(text):
        record = parse_row(line, source_file, now, market_timezone)
        if record is not None:
            records.append(record)
    return records
