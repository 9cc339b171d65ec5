"""Unit tests for UTC timestamp helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from driverpro_notifier.utils.timestamps import (
    ensure_utc,
    format_timestamp,
    parse_iso_datetime,
    utc_now,
)


def test_utc_now_is_aware():
    assert utc_now().tzinfo == timezone.utc


class TestEnsureUtc:
    def test_naive_is_assumed_utc(self):
        result = ensure_utc(datetime(2025, 3, 3, 14, 5))

        assert result == datetime(2025, 3, 3, 14, 5, tzinfo=timezone.utc)

    def test_aware_is_converted(self):
        paris = timezone(timedelta(hours=1))

        result = ensure_utc(datetime(2025, 3, 3, 14, 5, tzinfo=paris))

        assert result == datetime(2025, 3, 3, 13, 5, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc

    def test_none(self):
        assert ensure_utc(None) is None


class TestParseIsoDatetime:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2025-03-03T13:05:00Z", datetime(2025, 3, 3, 13, 5, tzinfo=timezone.utc)),
            ("2025-03-03T14:05:00+01:00", datetime(2025, 3, 3, 13, 5, tzinfo=timezone.utc)),
            ("2025-03-03T13:05:00", datetime(2025, 3, 3, 13, 5, tzinfo=timezone.utc)),
            ("2025-03-03", datetime(2025, 3, 3, tzinfo=timezone.utc)),
            ("  2025-03-03T13:05:00z ", datetime(2025, 3, 3, 13, 5, tzinfo=timezone.utc)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_iso_datetime(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "03/03/2025", "demain"])
    def test_invalid(self, value):
        assert parse_iso_datetime(value) is None


def test_format_timestamp_millisecond_z():
    value = datetime(2025, 3, 3, 13, 5, 7, 123456, tzinfo=timezone.utc)

    assert format_timestamp(value) == "2025-03-03T13:05:07.123Z"
