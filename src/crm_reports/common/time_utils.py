"""Time utilities for consistent timestamp handling."""

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone.
    """
    return datetime.now(UTC)


def parse_iso(s: str) -> datetime:
    """Parse an ISO 8601 date or datetime string.

    Accepts the trailing ``Z`` the hosted backend emits and bare dates
    (``2024-01-15``), which parse to midnight.

    Args:
        s: ISO 8601 formatted string.

    Returns:
        Parsed datetime.

    Raises:
        ValueError: If the string is not ISO 8601.
    """
    text = s.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def coerce_datetime(value: object) -> datetime | None:
    """Best-effort conversion of a cell value to a datetime.

    Args:
        value: A datetime, date, or ISO 8601 string.

    Returns:
        Datetime, or None if the value is not date-like.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return parse_iso(value)
        except ValueError:
            return None
    return None
