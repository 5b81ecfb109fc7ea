"""
Date helpers shared by services and display formatting.

All formatting is done in UTC: timestamps are shown exactly as stored,
without conversion to the viewer's local timezone.
"""
from datetime import date, datetime, timezone
from typing import Optional, Union

NOT_AVAILABLE = "N/A"

DateLike = Union[datetime, date, str, None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite hands them back without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """
    Parse a datetime, date or ISO-8601 string into an aware UTC datetime.

    Returns None when the value is missing or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def format_date_time(value: DateLike) -> str:
    """
    Format as "HH:MM DD/MM/YYYY" in UTC.

    Example:
        "2025-08-05T15:34:46.248Z" -> "15:34 05/08/2025"
    """
    parsed = parse_datetime(value)
    if parsed is None:
        return NOT_AVAILABLE
    return parsed.strftime("%H:%M %d/%m/%Y")


def format_relative_date_time(value: DateLike, now: Optional[datetime] = None) -> str:
    """
    Format relative to today (UTC): "HH:MM today", "HH:MM yesterday" or "HH:MM N days ago".

    Example, with today being 2025-08-06:
        "2025-08-06T10:00:00Z" -> "10:00 today"
        "2025-08-05T15:30:00Z" -> "15:30 yesterday"
        "2025-08-03T09:15:00Z" -> "09:15 3 days ago"
    """
    parsed = parse_datetime(value)
    if parsed is None:
        return NOT_AVAILABLE

    reference = ensure_utc(now) if now is not None else utcnow()
    diff_days = (reference.date() - parsed.date()).days
    time = parsed.strftime("%H:%M")

    if diff_days == 0:
        return f"{time} today"
    if diff_days == 1:
        return f"{time} yesterday"
    return f"{time} {diff_days} days ago"


def format_baseline_relative_date_time(value: DateLike) -> str:
    """Format as "HH:MM Mon D, YYYY" in UTC, e.g. "15:34 Aug 5, 2025"."""
    parsed = parse_datetime(value)
    if parsed is None:
        return NOT_AVAILABLE
    return f"{parsed.strftime('%H:%M')} {parsed.strftime('%b')} {parsed.day}, {parsed.year}"
