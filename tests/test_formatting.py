"""
Tests for utils/formatting.py
"""
import sys
from datetime import date, datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.formatting import (
    capitalize_level,
    format_count,
    format_display_date,
    format_percent,
    format_short_date,
    format_signed_percent,
    parse_date,
    truncate_cell,
    truncate_text,
)


class TestNumbers:
    def test_format_percent(self):
        assert format_percent(42.5) == "42.5%"
        assert format_percent(7, precision=0) == "7%"
        assert format_percent(None) == "-"

    def test_format_signed_percent(self):
        assert format_signed_percent(12.5) == "+12.5%"
        assert format_signed_percent(-3) == "-3.0%"
        assert format_signed_percent(0) == "0.0%"
        assert format_signed_percent(None) == "0.0%"

    def test_format_count(self):
        assert format_count(1234567) == "1,234,567"
        assert format_count(12.0) == "12"
        assert format_count(12.5) == "12.5"
        assert format_count(None) == "-"


class TestTruncation:
    def test_truncate_text(self):
        assert truncate_text("Long text here", 10) == "Long te..."
        assert truncate_text("Short", 10) == "Short"

    def test_truncate_cell(self):
        assert truncate_cell("Leadership Training Weekend") == "Leadership T..."
        assert truncate_cell("Present") == "Present"
        assert truncate_cell("exactly15chars!") == "exactly15chars!"


class TestDates:
    def test_parse_iso_day(self):
        assert parse_date("2025-03-09") == date(2025, 3, 9)

    def test_parse_timestamp_with_z(self):
        assert parse_date("2025-03-09T08:30:00Z") == date(2025, 3, 9)

    def test_parse_passthrough(self):
        assert parse_date(datetime(2025, 1, 5, 10, 0)) == date(2025, 1, 5)
        assert parse_date(date(2025, 1, 5)) == date(2025, 1, 5)
        assert parse_date("") is None

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_date("not a date")

    def test_display_date(self):
        assert format_display_date("2025-01-05") == "Jan 5, 2025"
        assert format_display_date(None) == "N/A"
        assert format_display_date("garbage") == "Invalid Date"

    def test_short_date(self):
        assert format_short_date("2025-01-05") == "1/5/2025"
        assert format_short_date(date(2025, 12, 25)) == "12/25/2025"
        assert format_short_date(None) == "N/A"


class TestLevels:
    def test_capitalize_level(self):
        assert capitalize_level("region") == "Region"
        assert capitalize_level("") == ""
