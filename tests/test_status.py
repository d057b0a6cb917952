"""
Unit Tests for optionflow.merger.status and optionflow.merger.listing
"""

import os
import json

from optionflow.merger.engine import IncrementalMerger
from optionflow.merger.listing import publish_listing, scan_data_directory
from optionflow.merger.status import (
    REASON_COMBINED_MISSING,
    REASON_METADATA_CORRUPT,
    REASON_METADATA_MISSING,
    REASON_SOURCES_CHANGED,
    check_status,
)

from conftest import NOW, raw_row, write_source

FILE_A = "options_data_2025-05-30_10-15.csv"
FILE_B = "options_data_2025-05-31_09-00.csv"


class TestCheckStatus:
    """Tests for check_status() function"""

    def test_combined_missing(self, data_dir, merge_config):
        write_source(data_dir, FILE_A, [raw_row()])

        status = check_status(merge_config)

        assert status.needs_update is True
        assert status.reason == REASON_COMBINED_MISSING

    def test_metadata_missing(self, data_dir, merge_config):
        write_source(data_dir, FILE_A, [raw_row()])
        IncrementalMerger(merge_config, now=NOW).run()
        merge_config.metadata_file.unlink()

        status = check_status(merge_config)

        assert status.needs_update is True
        assert status.reason == REASON_METADATA_MISSING

    def test_metadata_corrupt(self, data_dir, merge_config):
        write_source(data_dir, FILE_A, [raw_row()])
        IncrementalMerger(merge_config, now=NOW).run()
        merge_config.metadata_file.write_text("[1, 2", encoding="utf-8")

        status = check_status(merge_config)

        assert status.needs_update is True
        assert status.reason == REASON_METADATA_CORRUPT

    def test_up_to_date(self, data_dir, merge_config):
        write_source(data_dir, FILE_A, [raw_row()])
        IncrementalMerger(merge_config, now=NOW).run()

        status = check_status(merge_config)

        assert status.needs_update is False
        assert status.record_count == 1
        assert status.source_files_in_ledger == 1
        assert status.latest_source == FILE_A

    def test_new_file(self, data_dir, merge_config):
        write_source(data_dir, FILE_A, [raw_row()])
        IncrementalMerger(merge_config, now=NOW).run()
        write_source(data_dir, FILE_B, [raw_row(ticker="MSFT")])

        status = check_status(merge_config)

        assert status.needs_update is True
        assert status.reason == REASON_SOURCES_CHANGED
        assert status.new_files == [FILE_B]

    def test_modified_file(self, data_dir, merge_config):
        """Test: A source file whose mtime changed since ingestion is reported"""
        source = write_source(data_dir, FILE_A, [raw_row()])
        IncrementalMerger(merge_config, now=NOW).run()
        os.utime(source, (1700000000, 1700000000))

        status = check_status(merge_config)

        assert status.needs_update is True
        assert [m.filename for m in status.modified_files] == [FILE_A]
        assert status.modified_files[0].new_time == "2023-11-14T22:13:20.000Z"

    def test_missing_file_does_not_need_update(self, data_dir, merge_config):
        """Test: Deleted source files are reported but do not force a merge"""
        write_source(data_dir, FILE_A, [raw_row()])
        IncrementalMerger(merge_config, now=NOW).run()
        (data_dir / FILE_A).unlink()

        status = check_status(merge_config)

        assert status.needs_update is False
        assert status.missing_files == [FILE_A]


class TestPublishListing:
    """Tests for scan_data_directory() and publish_listing()"""

    def test_newest_first(self, data_dir):
        write_source(data_dir, FILE_A, [raw_row()])
        write_source(data_dir, FILE_B, [raw_row()])

        entries = scan_data_directory(data_dir, now=NOW)

        assert [e["name"] for e in entries] == [FILE_B, FILE_A]
        assert entries[0]["timestamp"] == "2025-05-31T09:00:00"
        assert entries[0]["size"] == (data_dir / FILE_B).stat().st_size

    def test_unnamed_files_use_reference_instant(self, data_dir):
        write_source(data_dir, "options_data_combined.csv", [])
        write_source(data_dir, FILE_A, [raw_row()])

        entries = scan_data_directory(data_dir, now=NOW)

        assert entries[0] == {
            "name": "options_data_combined.csv",
            "size": (data_dir / "options_data_combined.csv").stat().st_size,
            "timestamp": NOW.isoformat(),
        }

    def test_only_csv_files(self, data_dir):
        write_source(data_dir, FILE_A, [raw_row()])
        (data_dir / "readme.txt").write_text("hi", encoding="utf-8")

        assert [e["name"] for e in scan_data_directory(data_dir, now=NOW)] == [FILE_A]

    def test_missing_directory(self, tmp_path):
        assert scan_data_directory(tmp_path / "nope", now=NOW) == []

    def test_publish_writes_json(self, data_dir, merge_config):
        write_source(data_dir, FILE_A, [raw_row()])

        entries = publish_listing(data_dir, merge_config.listing_file, now=NOW)

        assert json.loads(merge_config.listing_file.read_text(encoding="utf-8")) == entries
        assert merge_config.listing_file == data_dir.parent / "public" / "api" / "data-files"
