from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return a datetime object representing the current time in UTC."""
    return datetime.now(UTC)


def format_iso_date(dt: datetime | None, /) -> str | None:
    """
    Format a datetime object as an ISO 8601 string with second precision.

    >>> format_iso_date(datetime(2010, 10, 31, 12, 30, 15, 1234, UTC))
    '2010-10-31T12:30:15Z'
    """
    if dt is None:
        return None
    return dt.astimezone(UTC).replace(microsecond=0, tzinfo=None).isoformat() + 'Z'
