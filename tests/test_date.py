from datetime import date, datetime, timezone

import pytest

from swm_dashboard.utils.date import (
    format_baseline_relative_date_time,
    format_date_time,
    format_relative_date_time,
    parse_datetime,
)

TODAY = datetime(2025, 8, 6, 12, 0, tzinfo=timezone.utc)


class TestParseDatetime:

    def test_iso_string_with_z(self):
        assert parse_datetime("2025-08-05T15:34:46.248Z") == datetime(
            2025, 8, 5, 15, 34, 46, 248000, tzinfo=timezone.utc
        )

    def test_naive_datetime_is_utc(self):
        assert parse_datetime(datetime(2025, 8, 5, 15, 34)).tzinfo == timezone.utc

    def test_offset_is_converted(self):
        assert parse_datetime("2025-08-05T21:04:00+05:30").hour == 15

    def test_plain_date(self):
        assert parse_datetime(date(2025, 8, 5)) == datetime(2025, 8, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "not a date", 12345])
    def test_unparseable(self, value):
        assert parse_datetime(value) is None


def test_format_date_time():
    assert format_date_time("2025-08-05T15:34:46.248Z") == "15:34 05/08/2025"
    assert format_date_time(None) == "N/A"
    assert format_date_time("garbage") == "N/A"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-08-06T10:00:00Z", "10:00 today"),
        ("2025-08-05T15:30:00Z", "15:30 yesterday"),
        ("2025-08-03T09:15:00Z", "09:15 3 days ago"),
    ],
)
def test_format_relative_date_time(value, expected):
    assert format_relative_date_time(value, now=TODAY) == expected


def test_format_relative_date_time_missing():
    assert format_relative_date_time(None, now=TODAY) == "N/A"


def test_format_baseline_relative_date_time():
    assert format_baseline_relative_date_time("2025-08-05T15:34:46.248Z") == "15:34 Aug 5, 2025"
    assert format_baseline_relative_date_time(None) == "N/A"
