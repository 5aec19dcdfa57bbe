"""Tests for datetime parsing service."""

from datetime import date, datetime, timezone

from fleetsync.services.datetime_service import (
    format_datetime,
    now_stamp,
    now_utc,
    parse_date,
    parse_datetime,
)


class TestDatetimeParsing:
    def test_parse_full_format(self) -> None:
        result = parse_datetime("2026-02-02 22:21:29.975359+00")
        assert result.year == 2026
        assert result.month == 2
        assert result.day == 2
        assert result.hour == 22
        assert result.minute == 21

    def test_parse_date_only(self) -> None:
        result = parse_datetime("2026-02-02")
        assert result.hour == 0
        assert result.minute == 0

    def test_parse_datetime_naive_adds_tz(self) -> None:
        dt = datetime(2026, 1, 1, 12, 0)
        result = parse_datetime(dt, default_tz="UTC")
        assert result.tzinfo is not None

    def test_format_datetime(self) -> None:
        dt = datetime(2026, 2, 2, 22, 21, 29, 975359, tzinfo=timezone.utc)
        assert format_datetime(dt) == "2026-02-02 22:21:29.975359+0000"

    def test_now_utc(self) -> None:
        assert now_utc().tzinfo is not None
        assert now_stamp().endswith("+0000")


class TestParseDate:
    def test_upstream_shapes(self) -> None:
        assert parse_date("2026-03-10") == date(2026, 3, 10)
        assert parse_date("2026-03-10T23:30:00+00:00") == date(2026, 3, 10)

    def test_empty_and_garbage(self) -> None:
        assert parse_date(None) is None
        assert parse_date("  ") is None
        assert parse_date("not a date") is None
