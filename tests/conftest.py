"""
Shared fixtures and row builders for the optionflow test suite.
"""

from pathlib import Path
from datetime import datetime
from typing import List, Optional

import pytest

from optionflow.config import MergeConfig


# Reference instant used by every time-dependent test
NOW = datetime(2025, 6, 1, 12, 0, 0)

RAW_HEADER = (
    "avatar,username,botText,time,sep,fullTimestamp,sweepType,ticker,strike,"
    "expiry,optionType,bidAsk,volume,premium,openInterest,extra"
)


def _quote(field: str) -> str:
    if "," in field:
        return f'"{field}"'
    return field


def raw_row(
    ticker: str = "AAPL",
    strike: str = "150",
    expiry: str = "12/31/2099",
    option_type: str = "C",
    volume: str = "500",
    premium: str = "$1.2M",
    open_interest: str = "1,000",
    timestamp: str = "2025-05-30 10:15:00",
    sweep_type: str = "SWEEP",
    alternative: bool = False,
    short_timestamp: str = "10:15",
) -> str:
    """Build one raw alert line (16 fields) in the standard or alternative layout."""
    if alternative:
        lead = ["", "", "", "", "["]
    else:
        lead = ["avatar.png", "flowbot", "Unusual activity", short_timestamp, "|"]
    fields = lead + [
        timestamp,
        sweep_type,
        ticker,
        strike,
        expiry,
        option_type,
        "Above Ask",
        volume,
        premium,
        open_interest,
        "",
    ]
    return ",".join(_quote(f) for f in fields)


def write_source(data_dir: Path, name: str, rows: List[str], header: Optional[str] = RAW_HEADER) -> Path:
    lines = ([header] if header is not None else []) + rows
    path = data_dir / name
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def data_dir(tmp_path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def merge_config(data_dir) -> MergeConfig:
    return MergeConfig.for_directory(data_dir)
