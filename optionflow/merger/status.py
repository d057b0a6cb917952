"""
Data Status Check

Compares the data directory with the ledger and reports whether the
combined dataset is out of date:
- new source files (on disk, not in the ledger)
- modified source files (mtime differs from the ledger entry)
- missing source files (in the ledger, no longer on disk; informational only)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import MergeConfig
from .engine import IncrementalMerger, format_mtime
from .state import ledger_entries, read_metadata

logger = logging.getLogger(__name__)

REASON_COMBINED_MISSING = "Combined file missing"
REASON_METADATA_MISSING = "Metadata missing"
REASON_METADATA_CORRUPT = "Metadata corrupted"
REASON_SOURCES_CHANGED = "New or modified source files detected"


@dataclass
class ModifiedFile:
    filename: str
    old_time: str
    new_time: str


@dataclass
class DataStatus:
    needs_update: bool
    reason: Optional[str] = None
    new_files: List[str] = field(default_factory=list)
    modified_files: List[ModifiedFile] = field(default_factory=list)
    missing_files: List[str] = field(default_factory=list)
    source_files_on_disk: int = 0
    source_files_in_ledger: int = 0
    record_count: Optional[int] = None
    generated_at: Optional[str] = None
    latest_source: Optional[str] = None


def check_status(config: MergeConfig) -> DataStatus:
    """Report whether a merge run would change the combined dataset."""
    if not config.combined_file.exists():
        return DataStatus(needs_update=True, reason=REASON_COMBINED_MISSING)

    if not config.metadata_file.exists():
        return DataStatus(needs_update=True, reason=REASON_METADATA_MISSING)

    try:
        document = read_metadata(config.metadata_file)
        ledger = ledger_entries(document)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to read metadata: {e}")
        return DataStatus(needs_update=True, reason=REASON_METADATA_CORRUPT)

    current = IncrementalMerger(config).discover_source_files()
    current_names = {p.name for p in current}

    new_files = [p.name for p in current if p.name not in ledger]
    missing_files = [name for name in ledger if name not in current_names]

    modified_files = []
    for path in current:
        entry = ledger.get(path.name)
        if entry is None:
            continue
        on_disk = format_mtime(path.stat().st_mtime)
        if entry.modified_time != on_disk:
            modified_files.append(ModifiedFile(path.name, entry.modified_time, on_disk))

    records = document.get("combinedFile", {}).get("records", {})
    needs_update = bool(new_files or modified_files)

    return DataStatus(
        needs_update=needs_update,
        reason=REASON_SOURCES_CHANGED if needs_update else None,
        new_files=new_files,
        modified_files=modified_files,
        missing_files=missing_files,
        source_files_on_disk=len(current),
        source_files_in_ledger=len(ledger),
        record_count=records.get("totalUnique"),
        generated_at=document.get("generatedAt"),
        latest_source=document.get("sourceFiles", {}).get("latest"),
    )
