"""
Test Module for the Timestamp Parser.

Validates:
- Format precedence (day-first dotted before ISO-like)
- Calendar validation falling through to the next format
- Totality: None for anything unreadable, never an exception
- UTC offsets converted instead of dropped
"""

from datetime import datetime

import pytest

from sms_insights.services.timestamps import (
    EPOCH,
    parse_timestamp,
    parse_timestamp_or_epoch,
)


class TestKnownFormats:
    """Tests for the explicit formats."""

    @pytest.mark.parametrize('text,expected', [
        ('05.03.2024 14:30:00', datetime(2024, 3, 5, 14, 30, 0)),
        ('5.3.2024 9:05', datetime(2024, 3, 5, 9, 5)),
        ('05.03.2024, 14:30', datetime(2024, 3, 5, 14, 30)),
        ('05.03.2024', datetime(2024, 3, 5)),
        ('2024-03-05 14:30:15', datetime(2024, 3, 5, 14, 30, 15)),
        ('2024-03-05T14:30', datetime(2024, 3, 5, 14, 30)),
        ('2024-03-05', datetime(2024, 3, 5)),
        ('  05.03.2024 14:30:00  ', datetime(2024, 3, 5, 14, 30)),
    ])
    def test_parses(self, text, expected):
        assert parse_timestamp(text) == expected

    def test_dotted_dates_are_day_first(self):
        assert parse_timestamp('01.02.2024') == datetime(2024, 2, 1)

    def test_date_with_time_prefers_the_timed_format(self):
        parsed = parse_timestamp('05.03.2024 23:59:59')

        assert (parsed.hour, parsed.minute, parsed.second) == (23, 59, 59)


class TestUtcOffsets:
    """Tests for timestamps that carry a UTC offset."""

    @pytest.mark.parametrize('text,expected', [
        ('2024-03-05T14:30:00+03:00', datetime(2024, 3, 5, 11, 30)),
        ('2024-03-05T14:30:00Z', datetime(2024, 3, 5, 14, 30)),
        ('2024-03-05T01:00:00+03:00', datetime(2024, 3, 4, 22, 0)),
    ])
    def test_converted_to_naive_utc(self, text, expected):
        parsed = parse_timestamp(text)

        assert parsed == expected
        assert parsed.tzinfo is None


class TestInvalidInput:
    """Tests for inputs that must not produce a date."""

    @pytest.mark.parametrize('text', [None, '', '   ', 'not a date', 'сегодня'])
    def test_unreadable_gives_none(self, text):
        assert parse_timestamp(text) is None

    def test_impossible_calendar_date(self):
        assert parse_timestamp('31.02.2024') is None

    def test_impossible_time_falls_back_to_date_only(self):
        assert parse_timestamp('05.03.2024 25:00') == datetime(2024, 3, 5)

    @pytest.mark.parametrize('text', ['99.99.9999', '::', '12345678901234567890', '2024-13-45', '-'])
    def test_parser_is_total(self, text):
        # Must not raise
        parse_timestamp(text)


class TestEpochFallback:
    """Tests for the sorting helper."""

    def test_unreadable_sorts_at_epoch(self):
        assert parse_timestamp_or_epoch('garbage') == EPOCH
        assert parse_timestamp_or_epoch(None) == datetime(1970, 1, 1)

    def test_readable_passes_through(self):
        assert parse_timestamp_or_epoch('2024-03-05') == datetime(2024, 3, 5)
