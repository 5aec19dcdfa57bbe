"""Datetime helpers: lax upstream input, strict stored output."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pendulum

# Strict storage format: YYYY-MM-DD HH:MM:SS.ffffff±TZ
STRICT_FORMAT = "%Y-%m-%d %H:%M:%S.%f%z"


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime string into a timezone-aware datetime.

    Accepts the stored strict format, ISO 8601 variants and bare dates.
    Missing timezone defaults to default_tz, missing time to midnight.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=pendulum.timezone(default_tz))  # type: ignore[arg-type]
        return value

    parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed  # type: ignore[return-value]


def parse_date(value: str | None) -> date | None:
    """Return the calendar date of an upstream date or datetime string.

    Unparseable or empty input yields None.
    """
    if not value or not value.strip():
        return None
    try:
        return parse_datetime(value).date()
    except ValueError:
        return None


def format_datetime(dt: datetime) -> str:
    """Format a datetime to the strict storage format."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.strftime(STRICT_FORMAT)


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def now_stamp() -> str:
    """Return the current UTC time in the strict storage format."""
    return format_datetime(now_utc())


def today_utc() -> date:
    return now_utc().date()

