"""
Client-side dataset aggregation.

Parses fetched files with the same row rules as the merge engine and
collapses duplicates with the same dedup key (first seen wins, files taken
newest first). Content that starts with the combined dataset header is read
as combined rows, so the published combined file can be served as well.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import pandas as pd

from ..parsing.expiry import is_expired
from ..parsing.keys import dedup_key
from ..parsing.records import COMBINED_COLUMNS, TradeRecord
from ..parsing.row_parser import (
    iter_data_lines,
    is_combined_text,
    parse_csv_text,
    record_from_combined,
    split_csv_line,
)

logger = logging.getLogger(__name__)


@dataclass
class FileSummary:
    filename: str
    record_count: int
    timestamp: datetime


@dataclass
class MergedDataInfo:
    total_files: int = 0
    total_records: int = 0
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None
    files: List[FileSummary] = field(default_factory=list)


@dataclass
class MergedDataset:
    records: List[TradeRecord]
    info: MergedDataInfo

    def to_frame(self) -> pd.DataFrame:
        """Records as a DataFrame with the combined dataset columns."""
        df = pd.DataFrame([r.to_row() for r in self.records], columns=COMBINED_COLUMNS)
        df["strike"] = pd.to_numeric(df["strike"])
        for column in ("volume", "openInterest", "bidAskSpread"):
            df[column] = pd.to_numeric(df[column]).astype("int64")
        return df


def _parse_combined_text(text: str, now: Optional[datetime], market_timezone: Optional[str]) -> List[TradeRecord]:
    records = []
    for line in iter_data_lines(text):
        record = record_from_combined(split_csv_line(line))
        if record is None or not record.ticker:
            continue
        if is_expired(record.expiry, now, market_timezone):
            continue
        records.append(record)
    return records


def merge_loaded_files(
    files,
    now: Optional[datetime] = None,
    market_timezone: Optional[str] = None,
) -> MergedDataset:
    """
    Merge fetched files into one deduplicated record list.

    Args:
        files: objects with ``filename``, ``timestamp`` and ``data`` (LoadedFile)
        now: reference instant for expiry checks
        market_timezone: used only when ``now`` is timezone-aware
    """
    ordered = sorted(files, key=lambda f: f.timestamp, reverse=True)

    seen = set()
    merged: List[TradeRecord] = []
    info = MergedDataInfo(total_files=len(ordered))

    for loaded in ordered:
        if is_combined_text(loaded.data):
            parsed = _parse_combined_text(loaded.data, now, market_timezone)
        else:
            parsed = parse_csv_text(loaded.data, loaded.filename, now, market_timezone)

        for record in parsed:
            key = dedup_key(record)
            if key in seen:
                continue
            seen.add(key)
            merged.append(record)

        info.files.append(FileSummary(loaded.filename, len(parsed), loaded.timestamp))

        if info.earliest is None or loaded.timestamp < info.earliest:
            info.earliest = loaded.timestamp
        if info.latest is None or loaded.timestamp > info.latest:
            info.latest = loaded.timestamp

    info.total_records = len(merged)
    logger.info(f"Merged {info.total_records} records from {info.total_files} files")
    return MergedDataset(records=merged, info=info)
