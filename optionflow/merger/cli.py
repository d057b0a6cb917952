#!/usr/bin/env python3
"""
OptionFlow Merge CLI

Command-line interface for the incremental merge engine.

Responsibilities:
- Argument parsing
- Logger setup
- Exit codes

NO business logic lives here.

Usage:
    optionflow                      # same as "optionflow merge"
    optionflow merge [--full-rebuild]
    optionflow status
    optionflow publish-listing
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from ..config import MergeConfig
from ..logging_setup import create_logger
from .engine import IncrementalMerger
from .listing import publish_listing
from .state import MergeError
from .status import check_status

logger = logging.getLogger(__name__)


# ============================================================
# Helpers
# ============================================================

def build_config(args: argparse.Namespace) -> MergeConfig:
    if args.data_dir:
        config = MergeConfig.for_directory(Path(args.data_dir))
    else:
        config = MergeConfig.from_environment(Path(args.root) if args.root else None)
    if args.prefix:
        config.source_prefix = args.prefix
    return config


# ============================================================
# Commands
# ============================================================

def cmd_merge(args: argparse.Namespace, config: MergeConfig) -> int:
    """
    Fold new source files into the combined dataset.

    Exit codes:
        0 -> up to date or merge completed
        1 -> unreadable source file or persisted state
    """
    try:
        summary = IncrementalMerger(config).run(full_rebuild=args.full_rebuild)
    except MergeError as e:
        logger.error(f"Merge failed: {e}")
        return 1

    if summary.up_to_date:
        print("[OK] No new files to process")
    else:
        print(
            f"[OK] {summary.new_files_processed} file(s) merged, "
            f"{summary.new_unique_records} new records, {summary.total_records} total"
        )
    return 0


def cmd_status(args: argparse.Namespace, config: MergeConfig) -> int:
    """
    Exit codes:
        0 -> combined file is up to date
        1 -> a merge run is needed
    """
    try:
        status = check_status(config)
    except MergeError as e:
        logger.error(f"Status check failed: {e}")
        return 1

    if status.generated_at:
        print(f"Combined file: {config.combined_file}")
        print(f"   Generated: {status.generated_at}")
        print(f"   Records: {status.record_count}")
        print(f"   Source files in ledger: {status.source_files_in_ledger}")
        print(f"   Source files in directory: {status.source_files_on_disk}")
        print(f"   Latest source file: {status.latest_source}")

    for name in status.new_files:
        print(f"   + {name}")
    for modified in status.modified_files:
        print(f"   ~ {modified.filename} ({modified.old_time} -> {modified.new_time})")
    for name in status.missing_files:
        print(f"   - {name}")

    if status.needs_update:
        print(f"[OUT OF DATE] {status.reason}")
        return 1

    print("[OK] Combined file is up to date")
    return 0


def cmd_publish_listing(args: argparse.Namespace, config: MergeConfig) -> int:
    listing_file = Path(args.output) if args.output else config.listing_file
    try:
        entries = publish_listing(config.data_dir, listing_file)
    except OSError as e:
        logger.error(f"Error updating listing file {listing_file}: {e}")
        return 1

    print(f"[OK] {len(entries)} file(s) listed in {listing_file}")
    return 0


# ============================================================
# Main
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="optionflow",
        description="Incremental merge of options / dark-pool alert CSV exports",
    )
    parser.add_argument("--root", help="Project root (default: OPTIONFLOW_ROOT or cwd)")
    parser.add_argument("--data-dir", help="Data directory (overrides --root)")
    parser.add_argument("--prefix", help="Source filename prefix (default: options_data_)")
    parser.add_argument("--log-file", help="Also log to this file (rotated)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    merge = subparsers.add_parser("merge", help="Merge new source files (default command)")
    merge.add_argument(
        "--full-rebuild",
        action="store_true",
        help="Ignore existing combined data and ledger, reprocess every source file",
    )
    merge.set_defaults(func=cmd_merge)

    status = subparsers.add_parser("status", help="Check whether the combined file is up to date")
    status.set_defaults(func=cmd_status)

    listing = subparsers.add_parser("publish-listing", help="Write the data-files listing")
    listing.add_argument("--output", help="Listing file path (default: <root>/public/api/data-files)")
    listing.set_defaults(func=cmd_publish_listing)

    argv = sys.argv[1:] if argv is None else list(argv)
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(argv + ["merge"])

    create_logger(
        "optionflow",
        log_file=Path(args.log_file) if args.log_file else None,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    config = build_config(args)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
