"""
OptionFlow

Incremental merge and deduplication of options / dark-pool trade alert
CSV exports, plus the client-side loader that consumes the published files.
"""

from .config import LoaderConfig, MergeConfig
from .parsing import TradeRecord, dedup_key, is_expired, parse_row
from .merger import IncrementalMerger, MergeError, MergeSummary, check_status
from .loader import ClientFileLoader, FileCache, merge_loaded_files

__version__ = "2.0.0"

__all__ = [
    "LoaderConfig",
    "MergeConfig",
    "TradeRecord",
    "dedup_key",
    "is_expired",
    "parse_row",
    "IncrementalMerger",
    "MergeError",
    "MergeSummary",
    "check_status",
    "ClientFileLoader",
    "FileCache",
    "merge_loaded_files",
]
