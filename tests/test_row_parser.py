"""
Unit Tests for optionflow.parsing.row_parser
Tests for split_csv_line, is_valid_ticker, evaluate_row, parse_row and combined rows
"""

import pytest

from optionflow.parsing.row_parser import (
    REJECT_EXPIRED,
    REJECT_INVALID,
    REJECT_MALFORMED,
    evaluate_row,
    is_combined_text,
    is_valid_ticker,
    parse_csv_text,
    parse_float,
    parse_int,
    parse_row,
    record_from_combined,
    split_csv_line,
)
from optionflow.parsing.records import COMBINED_COLUMNS

from conftest import NOW, RAW_HEADER, raw_row


class TestSplitCsvLine:
    """Tests for split_csv_line() function"""

    def test_plain_fields(self):
        """Test: Splits on every comma"""
        assert split_csv_line("a,b,c") == ["a", "b", "c"]

    def test_quoted_comma_does_not_split(self):
        """Test: Commas inside quotes stay in the field and quotes are dropped"""
        assert split_csv_line('a,"1,500",c') == ["a", "1,500", "c"]

    def test_empty_fields_kept(self):
        """Test: Consecutive commas produce empty fields"""
        assert split_csv_line("a,,b,") == ["a", "", "b", ""]

    def test_whitespace_not_trimmed(self):
        """Test: Field values are not trimmed"""
        assert split_csv_line(" a , b") == [" a ", " b"]


class TestNumericCoercion:
    """Tests for parse_int() and parse_float()"""

    def test_int_strips_thousands_separators(self):
        assert parse_int("1,500") == 1500

    def test_int_leading_digits(self):
        assert parse_int("500 contracts") == 500

    def test_int_failure_is_zero(self):
        assert parse_int("n/a") == 0
        assert parse_int("") == 0

    def test_float_parses_decimal(self):
        assert parse_float("150.5") == 150.5

    def test_float_failure_is_zero(self):
        assert parse_float("abc") == 0.0


class TestTickerValidation:
    """Tests for is_valid_ticker() function"""

    @pytest.mark.parametrize("ticker", ["AB12", "A", "SPY", "ABCDEFGHIJ", "BRK2"])
    def test_accepted(self, ticker):
        """Test: Uppercase alphanumerics of 1-10 chars are accepted"""
        assert is_valid_ticker(ticker) is True

    @pytest.mark.parametrize("ticker", [
        "TOOLONGTICKERX",  # 14 chars
        "ABCDEFGHIJK",     # 11 chars
        "",
        "BID",
        "Bid",
        "SWEEP",
        "PREMIUM",
        "12345",
        "AB C",
        "abc",
        "BRK.B",
    ])
    def test_rejected(self, ticker):
        """Test: Length, reserved words, numeric-only, spaces and lowercase are rejected"""
        assert is_valid_ticker(ticker) is False


class TestEvaluateRow:
    """Tests for evaluate_row() / parse_row() on raw alert lines"""

    def test_standard_row(self):
        """Test: Standard layout row maps every field"""
        record, reason = evaluate_row(raw_row(), "options_data_2025-05-30_10-15.csv", NOW)

        assert reason is None
        assert record.ticker == "AAPL"
        assert record.strike == 150.0
        assert record.expiry == "12/31/2099"
        assert record.option_type == "C"
        assert record.volume == 500
        assert record.premium == "$1.2M"
        assert record.open_interest == 1000
        assert record.timestamp == "2025-05-30 10:15:00"
        assert record.sweep_type == "SWEEP"
        assert record.source_file == "options_data_2025-05-30_10-15.csv"
        assert record.bid_ask_spread == 0

    def test_alternative_row(self):
        """Test: Alternative layout row ('[' marker) resolves the same fields"""
        record = parse_row(raw_row(ticker="TSLA", alternative=True), "f.csv", NOW)

        assert record is not None
        assert record.ticker == "TSLA"
        assert record.strike == 150.0
        assert record.timestamp == "2025-05-30 10:15:00"

    def test_volume_with_thousands_separator(self):
        """Test: Quoted volume with commas parses as an integer"""
        record = parse_row(raw_row(volume="1,500"), "f.csv", NOW)
        assert record.volume == 1500

    def test_missing_premium_defaults(self):
        """Test: Empty premium becomes $0"""
        record = parse_row(raw_row(premium=""), "f.csv", NOW)
        assert record.premium == "$0"

    def test_standard_timestamp_fallback(self):
        """Test: Standard row with blank full timestamp falls back to field 3"""
        record = parse_row(raw_row(timestamp="", short_timestamp="10:15"), "f.csv", NOW)
        assert record.timestamp == "10:15"

    def test_alternative_blank_timestamp_stays_blank(self):
        """Test: Alternative row has no fallback timestamp"""
        record = parse_row(raw_row(timestamp="", alternative=True), "f.csv", NOW)
        assert record.timestamp == ""

    def test_too_few_fields(self):
        """Test: Lines with fewer than 16 fields are malformed"""
        record, reason = evaluate_row("a,b,c,d,e,f,g,AAPL,150,12/31/2099,C", "f.csv", NOW)
        assert record is None
        assert reason == REJECT_MALFORMED

    @pytest.mark.parametrize("overrides", [
        {"volume": "0"},
        {"volume": "n/a"},
        {"strike": "abc"},
        {"strike": "0"},
        {"expiry": ""},
        {"option_type": ""},
        {"ticker": "BID"},
        {"ticker": "TOOLONGTICKERX"},
    ])
    def test_invalid_rows(self, overrides):
        """Test: Rows failing a validity rule are rejected as invalid"""
        record, reason = evaluate_row(raw_row(**overrides), "f.csv", NOW)
        assert record is None
        assert reason == REJECT_INVALID

    def test_expired_row(self):
        """Test: Syntactically valid row with a past expiry is rejected as expired"""
        record, reason = evaluate_row(raw_row(expiry="01/17/2025"), "f.csv", NOW)
        assert record is None
        assert reason == REJECT_EXPIRED

    def test_unparseable_expiry_is_kept(self):
        """Test: Expiry in an unknown format is not treated as expired"""
        record = parse_row(raw_row(expiry="2025-01-17"), "f.csv", NOW)
        assert record is not None
        assert record.expiry == "2025-01-17"


class TestParseCsvText:
    """Tests for parse_csv_text() function"""

    def test_header_and_blank_lines_skipped(self):
        """Test: Header row and blank lines produce no records"""
        text = "\r\n".join([RAW_HEADER, raw_row(), "", raw_row(ticker="MSFT"), ""])
        records = parse_csv_text(text, "f.csv", NOW)

        assert [r.ticker for r in records] == ["AAPL", "MSFT"]

    def test_mixed_layouts(self):
        """Test: Standard and alternative rows in one body both parse"""
        text = "\n".join([RAW_HEADER, raw_row(ticker="AAPL"), raw_row(ticker="NVDA", alternative=True)])
        records = parse_csv_text(text, "f.csv", NOW)

        assert [r.ticker for r in records] == ["AAPL", "NVDA"]


class TestCombinedRows:
    """Tests for record_from_combined() and is_combined_text()"""

    def test_record_from_combined(self):
        """Test: Combined row values are taken verbatim, bidAskSpread preserved"""
        values = ["SPY", "450.5", "12/31/2099", "P", "2000", "$3.1M", "750", "7",
                  "2025-05-30 10:15:00", "BLOCK", "options_data_2025-05-30_10-15.csv"]
        record = record_from_combined(values)

        assert record.ticker == "SPY"
        assert record.strike == 450.5
        assert record.volume == 2000
        assert record.open_interest == 750
        assert record.bid_ask_spread == 7
        assert record.to_row() == values

    def test_short_combined_row(self):
        """Test: Rows with fewer than 11 values are skipped"""
        assert record_from_combined(["SPY", "450"]) is None

    def test_is_combined_text(self):
        assert is_combined_text(",".join(COMBINED_COLUMNS) + "\nSPY,450") is True
        assert is_combined_text(RAW_HEADER + "\n") is False
