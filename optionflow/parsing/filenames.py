"""
Source filename helpers.

Source exports are named ``<prefix>YYYY-MM-DD_HH-MM.csv`` where prefix is
one of ``options_data_``, ``option_data_`` or ``darkpool_data_``.
"""

import re
from datetime import datetime
from typing import Optional

from ..config import DEFAULT_SOURCE_PREFIX

_TIMESTAMP_PATTERN = re.compile(
    r"(?:options_data|option_data|darkpool_data)_(\d{4})-(\d{2})-(\d{2})_(\d{2})-(\d{2})\.csv"
)


def parse_timestamp_from_filename(filename: str) -> Optional[datetime]:
    """Return the naive capture time encoded in a source filename, or None."""
    match = _TIMESTAMP_PATTERN.search(filename)
    if not match:
        return None
    try:
        year, month, day, hour, minute = (int(g) for g in match.groups())
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def generate_data_filename(when: datetime, prefix: str = DEFAULT_SOURCE_PREFIX) -> str:
    return f"{prefix}{when.strftime('%Y-%m-%d_%H-%M')}.csv"


def is_source_filename(filename: str, prefix: str, combined_filename: str) -> bool:
    """Discovery rule: right prefix, .csv suffix, and not the combined output itself."""
    return (
        filename.startswith(prefix)
        and filename.endswith(".csv")
        and filename != combined_filename
    )
