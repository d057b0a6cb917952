"""
OptionFlow Merger

Incremental merge of source CSV exports into one deduplicated,
non-expired combined dataset plus a processed-file ledger.
"""

from .state import (
    LedgerEntry,
    MergeError,
    MergeState,
    SourceFileError,
    StateError,
)
from .engine import FileStats, IncrementalMerger, MergeSummary
from .status import DataStatus, ModifiedFile, check_status
from .listing import publish_listing, scan_data_directory

__all__ = [
    "LedgerEntry",
    "MergeError",
    "MergeState",
    "SourceFileError",
    "StateError",
    "FileStats",
    "IncrementalMerger",
    "MergeSummary",
    "DataStatus",
    "ModifiedFile",
    "check_status",
    "publish_listing",
    "scan_data_directory",
]
