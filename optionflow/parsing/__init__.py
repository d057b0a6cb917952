"""
OptionFlow Parsing

Row-level parsing shared by the merge engine and the client loader.

Public API:
- parse_row / evaluate_row: one raw alert line -> TradeRecord
- detect_layout: standard vs alternative raw layout
- is_expired: expiry check against a reference instant
- dedup_key: identity of a logical trade
"""

from .records import COMBINED_COLUMNS, TradeRecord, format_number
from .layout import RowLayout, detect_layout
from .expiry import expiry_cutoff, is_expired
from .keys import dedup_key
from .row_parser import (
    REJECT_EXPIRED,
    REJECT_INVALID,
    REJECT_MALFORMED,
    evaluate_row,
    is_valid_ticker,
    parse_csv_text,
    parse_row,
    record_from_combined,
    split_csv_line,
)
from .filenames import (
    generate_data_filename,
    is_source_filename,
    parse_timestamp_from_filename,
)

__all__ = [
    "COMBINED_COLUMNS",
    "TradeRecord",
    "format_number",
    "RowLayout",
    "detect_layout",
    "expiry_cutoff",
    "is_expired",
    "dedup_key",
    "REJECT_EXPIRED",
    "REJECT_INVALID",
    "REJECT_MALFORMED",
    "evaluate_row",
    "is_valid_ticker",
    "parse_csv_text",
    "parse_row",
    "record_from_combined",
    "split_csv_line",
    "generate_data_filename",
    "is_source_filename",
    "parse_timestamp_from_filename",
]
