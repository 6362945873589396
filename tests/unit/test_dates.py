"""
Unit tests for date format patterns.
"""
from datetime import datetime, timedelta

import pytest

from newscrawler.crawler.dates import parse_date, translate_date_format
from newscrawler.crawler.errors import FailureKind, FieldExtractionError


class TestTranslateDateFormat:
    """Tests for translate_date_format."""

    def test_numeric_tokens(self):
        assert translate_date_format("{MONTH_NUM}-{DAY_NUM}-{YEAR_LONG}") == "%m-%d-%Y"

    def test_literal_percent_is_escaped(self):
        assert translate_date_format("{DAY_NUM}% {YEAR_SHORT}") == "%d%% %y"

    def test_unknown_token_rejected(self):
        with pytest.raises(ValueError, match="unknown date format token"):
            translate_date_format("{MONTH_NUM}-{FORTNIGHT}")

    def test_pattern_without_token_rejected(self):
        with pytest.raises(ValueError, match="no token"):
            translate_date_format("2021-01-01")


class TestParseDate:
    """Tests for parse_date."""

    def test_month_day_year(self):
        assert parse_date("03-04-2021", "{MONTH_NUM}-{DAY_NUM}-{YEAR_LONG}") == datetime(2021, 3, 4)

    def test_month_name(self):
        result = parse_date("March 4, 2021", "{MONTH_NAME} {DAY_NUM}, {YEAR_LONG}")
        assert result == datetime(2021, 3, 4)

    def test_time_of_day(self):
        result = parse_date(
            "Thu 04/03/21 09:15 PM",
            "{DAY_NAME_SHORT} {DAY_NUM}/{MONTH_NUM}/{YEAR_SHORT} {HOUR_12}:{MINUTE} {AM_PM}",
        )
        assert result == datetime(2021, 3, 4, 21, 15)

    def test_timezone_offset(self):
        result = parse_date("2021-03-04 10:00 +0100", "{YEAR_LONG}-{MONTH_NUM}-{DAY_NUM} {HOUR}:{MINUTE} {TZ_OFFSET}")
        assert result.utcoffset() == timedelta(hours=1)

    def test_mismatch_raises_field_extraction_error(self):
        with pytest.raises(FieldExtractionError) as exc_info:
            parse_date("yesterday", "{MONTH_NUM}-{DAY_NUM}-{YEAR_LONG}")
        assert exc_info.value.kind == FailureKind.FIELD_EXTRACTION
