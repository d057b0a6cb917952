"""
Merge State Store

Persisted state between merge runs:
- the combined dataset (CSV, COMBINED_COLUMNS order)
- the processed-file ledger (JSON metadata document, version "2.0")

Each run loads the state fresh, mutates it in memory and writes it back
atomically (temp file + os.replace). Nothing is kept in memory across runs.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..parsing.records import COMBINED_COLUMNS, TradeRecord
from ..parsing.keys import dedup_key
from ..parsing.expiry import is_expired
from ..parsing.row_parser import record_from_combined

logger = logging.getLogger(__name__)


class MergeError(Exception):
    """Base class for fatal merge failures."""


class SourceFileError(MergeError):
    """A discovered source file could not be read in full."""

    def __init__(self, path: Path, message: str):
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")


class StateError(MergeError):
    """The persisted combined dataset exists but cannot be read."""


# ============================================================
# Ledger
# ============================================================

@dataclass
class LedgerEntry:
    """Observed metadata for one source file at ingestion time."""

    filename: str
    modified_time: str
    parsed_timestamp: Optional[str]
    size: int

    def to_dict(self) -> Dict:
        return {
            "filename": self.filename,
            "modifiedTime": self.modified_time,
            "parsedTimestamp": self.parsed_timestamp,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'LedgerEntry':
        return cls(
            filename=str(data["filename"]),
            modified_time=str(data.get("modifiedTime") or ""),
            parsed_timestamp=data.get("parsedTimestamp"),
            size=int(data.get("size") or 0),
        )


def read_metadata(path: Path) -> Dict:
    """
    Read the ledger document.

    Raises:
        OSError, ValueError: unreadable file or invalid JSON
    """
    with open(path, 'r', encoding='utf-8') as f:
        document = json.load(f)
    if not isinstance(document, dict):
        raise ValueError("ledger document is not an object")
    return document


def ledger_entries(document: Dict) -> Dict[str, LedgerEntry]:
    """
    Extract filename -> LedgerEntry from a ledger document.

    Raises:
        ValueError: if the document does not have the expected structure
    """
    try:
        files = document["sourceFiles"]["files"]
        entries = {}
        for item in files:
            entry = LedgerEntry.from_dict(item)
            entries[entry.filename] = entry
        return entries
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"invalid ledger structure: {e}") from e


def load_ledger(path: Path) -> Tuple[Dict[str, LedgerEntry], Optional[Dict]]:
    """
    Load the processed-file ledger.

    A missing ledger is an empty ledger. A corrupt one is logged and treated
    as empty, which forces every source file to be reprocessed.
    """
    if not path.exists():
        return {}, None

    try:
        document = read_metadata(path)
        return ledger_entries(document), document
    except (OSError, ValueError) as e:
        logger.warning(f"Error loading ledger {path.name}: {e}. Starting fresh.")
        return {}, None


# ============================================================
# Combined dataset
# ============================================================

def load_combined(path: Path) -> List[TradeRecord]:
    """
    Read every row of the combined dataset, in file order.

    Expired rows are returned too; pruning happens later so the run can
    report how many it removed.

    Raises:
        StateError: if the file exists but cannot be read
    """
    if not path.exists():
        return []

    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            on_bad_lines="skip",
            encoding="utf-8",
        )
    except pd.errors.EmptyDataError:
        logger.warning(f"Combined file {path.name} is empty. Starting with no records.")
        return []
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise StateError(f"Cannot read combined file {path}: {e}") from e

    df = df.fillna("")
    missing = [c for c in COMBINED_COLUMNS if c not in df.columns]
    if missing:
        raise StateError(f"Combined file {path} is missing columns: {missing}")

    records = []
    for values in df[COMBINED_COLUMNS].itertuples(index=False, name=None):
        record = record_from_combined(list(values))
        if record is not None and record.ticker:
            records.append(record)
    return records


# ============================================================
# State
# ============================================================

@dataclass
class MergeState:
    """
    Combined dataset (dedup key -> record, insertion ordered) plus the ledger.
    """

    records: Dict[str, TradeRecord] = field(default_factory=dict)
    ledger: Dict[str, LedgerEntry] = field(default_factory=dict)
    previous_metadata: Optional[Dict] = None

    def __len__(self) -> int:
        return len(self.records)

    def is_processed(self, filename: str) -> bool:
        return filename in self.ledger

    def add(self, record: TradeRecord) -> bool:
        """Insert a record unless its key is already present. First seen wins."""
        key = dedup_key(record)
        if key in self.records:
            return False
        self.records[key] = record
        return True

    def prune_expired(self, now: datetime, market_timezone: Optional[str] = None) -> List[str]:
        """Remove every record whose expiry has passed. Returns the removed keys."""
        expired = [
            key for key, record in self.records.items()
            if is_expired(record.expiry, now, market_timezone)
        ]
        for key in expired:
            del self.records[key]
        return expired

    def mark_processed(self, entry: LedgerEntry):
        self.ledger[entry.filename] = entry

    @classmethod
    def load(cls, combined_file: Path, metadata_file: Path) -> 'MergeState':
        ledger, document = load_ledger(metadata_file)
        state = cls(ledger=ledger, previous_metadata=document)

        loaded = load_combined(combined_file)
        for record in loaded:
            state.add(record)
        if len(loaded) != len(state.records):
            logger.warning(
                f"Combined file held {len(loaded) - len(state.records)} duplicate rows; kept first occurrences"
            )
        return state


# ============================================================
# Atomic writes
# ============================================================

def _temp_path(path: Path) -> Path:
    return path.with_name(path.name + ".tmp")


def atomic_write_text(path: Path, text: str):
    """Write text to path via a temp file and os.replace. No partial output on failure."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = _temp_path(path)
    try:
        with open(temp_file, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, path)
    except Exception as e:
        logger.error(f"Error writing {path}: {e}")
        if temp_file.exists():
            temp_file.unlink()
        raise


def write_json(path: Path, document: Dict):
    atomic_write_text(path, json.dumps(document, indent=2) + "\n")


def write_combined(path: Path, records: Iterable[TradeRecord]):
    """
    Write the combined dataset atomically.

    Fields containing a comma, a double quote or a newline are quoted and
    embedded quotes are doubled; everything else is written bare.
    """
    rows = [record.to_row() for record in records]
    df = pd.DataFrame(rows, columns=COMBINED_COLUMNS, dtype=str)

    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = _temp_path(path)
    try:
        df.to_csv(temp_file, index=False, lineterminator="\n", encoding="utf-8")
        os.replace(temp_file, path)
        logger.info(f"Wrote {len(df)} records to {path.name}")
    except Exception as e:
        logger.error(f"Error writing combined file {path}: {e}")
        if temp_file.exists():
            temp_file.unlink()
        raise
