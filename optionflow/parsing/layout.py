"""
Format Disambiguator

Raw alert exports come in two column layouts that share the same tail
(strike through openInterest) but differ in the leading columns:

Standard:    [0]=avatar, [1]=username, [2]=botText, [3]=timestamp, [4]=separator,
             [5]=fullTimestamp, [6]=sweepType, [7]=ticker, [8]=strike, [9]=expiry,
             [10]=optionType, [11]=bidAskType, [12]=volume, [13]=premium,
             [14]=openInterest
Alternative: [0..3] empty, [4]="[", [5]=timestamp, then the same as standard.

Both layouts can appear in the same file, so the decision is made per row
from field values only.
"""

from enum import Enum
from typing import List


class RowLayout(Enum):
    STANDARD = "standard"
    ALTERNATIVE = "alternative"


ALTERNATIVE_MARKER = "["

# Shared field positions from index 5 onward
TIMESTAMP_INDEX = 5
SWEEP_TYPE_INDEX = 6
TICKER_INDEX = 7
STRIKE_INDEX = 8
EXPIRY_INDEX = 9
OPTION_TYPE_INDEX = 10
VOLUME_INDEX = 12
PREMIUM_INDEX = 13
OPEN_INTEREST_INDEX = 14

# Standard layout only: short timestamp used when the full one is blank
STANDARD_FALLBACK_TIMESTAMP_INDEX = 3


def field_at(fields: List[str], index: int) -> str:
    return fields[index] if index < len(fields) else ""


def detect_layout(fields: List[str]) -> RowLayout:
    """Alternative when field 4 is the bracket marker or fields 0-3 are all empty."""
    if field_at(fields, 4) == ALTERNATIVE_MARKER:
        return RowLayout.ALTERNATIVE
    if all(field_at(fields, i) == "" for i in range(4)):
        return RowLayout.ALTERNATIVE
    return RowLayout.STANDARD


def resolve_timestamp(fields: List[str], layout: RowLayout) -> str:
    timestamp = field_at(fields, TIMESTAMP_INDEX)
    if timestamp or layout is RowLayout.ALTERNATIVE:
        return timestamp
    return field_at(fields, STANDARD_FALLBACK_TIMESTAMP_INDEX)
