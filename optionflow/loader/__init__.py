"""
OptionFlow Client Loader

Fetches published data files over HTTP (with a TTL cache) and merges
them into one deduplicated dataset for presentation.
"""

from .cache import FileCache
from .dataset import FileSummary, MergedDataInfo, MergedDataset, merge_loaded_files
from .client import (
    ClientFileLoader,
    FileInfo,
    LoadedFile,
    NoDataFilesError,
    most_recent_timestamp,
    recent_files,
)

__all__ = [
    "FileCache",
    "FileSummary",
    "MergedDataInfo",
    "MergedDataset",
    "merge_loaded_files",
    "ClientFileLoader",
    "FileInfo",
    "LoadedFile",
    "NoDataFilesError",
    "most_recent_timestamp",
    "recent_files",
]
