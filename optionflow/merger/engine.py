"""
Incremental Merge Engine

One run = load -> discover -> ingest new files -> re-prune -> persist.

Guarantees:
- Idempotent: a run with no new source files writes nothing
- First seen wins: a later row with an existing dedup key is counted as a
  duplicate and never overwrites the stored record
- Expired records are dropped on ingestion and pruned from the whole
  dataset on every run that writes
- A ledger entry implies the file was fully ingested: if any new file
  cannot be read the run aborts before anything is written

full_rebuild=True ignores the persisted state, reprocesses every
discovered file and replaces the ledger with exactly those files.
"""

import logging
from pathlib import Path
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from ..config import LEDGER_GENERATED_BY, LEDGER_VERSION, MergeConfig
from ..parsing.filenames import is_source_filename, parse_timestamp_from_filename
from ..parsing.row_parser import (
    REJECT_EXPIRED,
    evaluate_row,
    iter_data_lines,
)
from .state import (
    LedgerEntry,
    MergeError,
    MergeState,
    SourceFileError,
    write_combined,
    write_json,
)

logger = logging.getLogger(__name__)


def format_mtime(mtime: float) -> str:
    """File modification time as a UTC ISO string with millisecond precision."""
    stamp = datetime.fromtimestamp(mtime, tz=timezone.utc)
    return stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z"


def format_instant(when: datetime) -> str:
    if when.tzinfo is None:
        return when.isoformat()
    return when.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class FileStats:
    """Per-file ingestion counts."""

    filename: str
    rows: int = 0
    records: int = 0
    rejected: int = 0
    expired: int = 0
    duplicates: int = 0
    unique: int = 0

    def to_dict(self) -> Dict:
        return {
            "filename": self.filename,
            "rows": self.rows,
            "records": self.records,
            "rejected": self.rejected,
            "expired": self.expired,
            "duplicates": self.duplicates,
            "unique": self.unique,
        }


@dataclass
class MergeSummary:
    """Outcome of one merge run."""

    files_discovered: int = 0
    files_already_processed: int = 0
    new_files_processed: int = 0
    records_parsed: int = 0
    new_unique_records: int = 0
    duplicates_rejected: int = 0
    expired_rejected: int = 0
    expired_pruned: int = 0
    rejected_rows: int = 0
    existing_records_kept: int = 0
    total_records: int = 0
    up_to_date: bool = False
    full_rebuild: bool = False
    file_stats: List[FileStats] = field(default_factory=list)

    @property
    def expired_removed(self) -> int:
        return self.expired_rejected + self.expired_pruned


class IncrementalMerger:
    """
    Folds new source CSV exports into the combined dataset.

    Args:
        config: paths and naming conventions
        now: reference instant for expiry decisions. Defaults to the wall
             clock, read once per run.
    """

    def __init__(self, config: MergeConfig, now: Optional[datetime] = None):
        self.config = config
        self._now = now

    # ------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------

    def discover_source_files(self) -> List[Path]:
        """Source files in the data directory, sorted by name."""
        data_dir = self.config.data_dir
        if not data_dir.is_dir():
            raise MergeError(f"Data directory not found: {data_dir}")

        return sorted(
            (
                p for p in data_dir.iterdir()
                if p.is_file() and is_source_filename(
                    p.name, self.config.source_prefix, self.config.combined_filename
                )
            ),
            key=lambda p: p.name,
        )

    # ------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------

    def _read_source_file(self, path: Path) -> Tuple[str, LedgerEntry]:
        try:
            stat = path.stat()
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read source file {path}: {e}")
            raise SourceFileError(path, str(e)) from e

        parsed = parse_timestamp_from_filename(path.name)
        entry = LedgerEntry(
            filename=path.name,
            modified_time=format_mtime(stat.st_mtime),
            parsed_timestamp=parsed.isoformat() if parsed else None,
            size=stat.st_size,
        )
        return text, entry

    def _ingest(self, state: MergeState, filename: str, text: str, now: datetime) -> FileStats:
        stats = FileStats(filename=filename)

        for line in iter_data_lines(text):
            stats.rows += 1
            record, reason = evaluate_row(line, filename, now, self.config.market_timezone)
            if record is None:
                if reason == REJECT_EXPIRED:
                    stats.expired += 1
                else:
                    stats.rejected += 1
                continue

            stats.records += 1
            if state.add(record):
                stats.unique += 1
            else:
                stats.duplicates += 1

        return stats

    # ------------------------------------------------------------
    # Ledger document
    # ------------------------------------------------------------

    def _build_metadata(
        self,
        state: MergeState,
        summary: MergeSummary,
        ingested: List[LedgerEntry],
        now: datetime,
    ) -> Dict:
        combined_file = self.config.combined_file
        latest = max(ingested, key=lambda e: e.modified_time) if ingested else None

        return {
            "generatedAt": format_instant(now),
            "generatedBy": LEDGER_GENERATED_BY,
            "sourceFiles": {
                "count": len(state.ledger),
                "latest": latest.filename if latest else None,
                "latestModified": latest.modified_time if latest else None,
                "files": [entry.to_dict() for entry in state.ledger.values()],
            },
            "combinedFile": {
                "filename": combined_file.name,
                "size": combined_file.stat().st_size,
                "records": {
                    "totalUnique": summary.total_records,
                    "newRecordsAdded": summary.records_parsed,
                    "newUniqueAdded": summary.new_unique_records,
                    "expiredRemoved": summary.expired_removed,
                    "duplicatesRemoved": summary.duplicates_rejected,
                    "existingRecordsKept": summary.existing_records_kept,
                },
                "fileStats": [s.to_dict() for s in summary.file_stats],
            },
            "version": LEDGER_VERSION,
            "note": (
                "Full rebuild: ledger lists exactly the files ingested in this run."
                if summary.full_rebuild else
                "Append mode: new files are merged into the existing combined data. "
                "Source files listed here can be deleted after ingestion."
            ),
        }

    # ------------------------------------------------------------
    # Run
    # ------------------------------------------------------------

    def run(self, full_rebuild: bool = False) -> MergeSummary:
        """
        Execute one merge run.

        Raises:
            SourceFileError: a new source file could not be read (nothing written)
            StateError: the persisted combined dataset could not be read
            MergeError: the data directory does not exist
        """
        now = self._now or datetime.now()
        tz = self.config.market_timezone

        logger.info("=" * 60)
        logger.info(f"Starting merge ({'full rebuild' if full_rebuild else 'append mode'})")
        logger.info("=" * 60)

        if full_rebuild:
            state = MergeState()
        else:
            state = MergeState.load(self.config.combined_file, self.config.metadata_file)
            logger.info(
                f"Loaded {len(state)} existing records, {len(state.ledger)} processed files in ledger"
            )

        summary = MergeSummary(full_rebuild=full_rebuild)

        discovered = self.discover_source_files()
        new_files = [p for p in discovered if not state.is_processed(p.name)]
        summary.files_discovered = len(discovered)
        summary.files_already_processed = len(discovered) - len(new_files)

        logger.info(f"Found {len(discovered)} source files")
        logger.info(f"   Already processed: {summary.files_already_processed}")
        logger.info(f"   New files to process: {len(new_files)}")

        if not new_files:
            summary.up_to_date = True
            summary.total_records = len(state)
            summary.existing_records_kept = len(state)
            logger.info("No new files to process. Combined file is up to date.")
            return summary

        existing_keys = set(state.records)

        # An unreadable file raises here, before anything is written
        ingested = []
        for path in new_files:
            text, entry = self._read_source_file(path)
            stats = self._ingest(state, path.name, text, now)
            summary.file_stats.append(stats)
            ingested.append(entry)
            logger.info(
                f"   {path.name}: {stats.records} records, {stats.unique} unique, "
                f"{stats.duplicates} duplicates, {stats.expired} expired"
            )

        for entry in ingested:
            state.mark_processed(entry)

        pruned = state.prune_expired(now, tz)
        summary.new_files_processed = len(ingested)
        summary.records_parsed = sum(s.records for s in summary.file_stats)
        summary.new_unique_records = sum(s.unique for s in summary.file_stats)
        summary.duplicates_rejected = sum(s.duplicates for s in summary.file_stats)
        summary.expired_rejected = sum(s.expired for s in summary.file_stats)
        summary.rejected_rows = sum(s.rejected for s in summary.file_stats)
        summary.expired_pruned = len(pruned)
        summary.existing_records_kept = len(existing_keys.intersection(state.records))
        summary.total_records = len(state)

        write_combined(self.config.combined_file, state.records.values())
        write_json(self.config.metadata_file, self._build_metadata(state, summary, ingested, now))

        self._log_summary(summary)
        return summary

    def _log_summary(self, summary: MergeSummary):
        logger.info("=" * 60)
        logger.info("Merge complete")
        logger.info(f"   Files discovered: {summary.files_discovered}")
        logger.info(f"   Already processed: {summary.files_already_processed}")
        logger.info(f"   New files processed: {summary.new_files_processed}")
        logger.info(f"   New unique records: {summary.new_unique_records}")
        logger.info(f"   Duplicates rejected: {summary.duplicates_rejected}")
        logger.info(
            f"   Expired removed: {summary.expired_removed} "
            f"({summary.expired_rejected} on ingestion, {summary.expired_pruned} pruned)"
        )
        logger.info(f"   Total records: {summary.total_records}")
        logger.info("=" * 60)
