from __future__ import annotations

from datetime import date, datetime, timezone


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_utc() -> datetime:
    """Current UTC time (naive, as stored in the database).

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def inclusive_days(start: date, end: date) -> int:
    """Calendar days between two dates, both ends included, never below 1.

    Weekends are counted.
    """
    return max(1, (end - start).days + 1)


def human_date(value: date) -> str:
    return value.strftime("%B %d, %Y")
