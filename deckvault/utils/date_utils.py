"""Date manipulation utilities"""

from datetime import date, datetime, timezone


def month_start(day: date | None = None) -> date:
    """First calendar day of the month containing `day` (default: today, UTC)"""
    if day is None:
        day = datetime.now(timezone.utc).date()
    return day.replace(day=1)


def month_key(day: date) -> str:
    """Serialize a month start as the stored `yyyy-mm-dd` marker"""
    return month_start(day).isoformat()


def parse_month_key(value: str | None) -> date | None:
    """
    Parse a stored month marker, tolerating full ISO timestamps.

    Malformed markers come back as None, so the credit type counts as never granted.
    """
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except (ValueError, TypeError):
        return None
