"""
Low-level timezone and timestamp utilities.

All persisted timestamps are timezone-aware UTC. Period boundaries are
computed in the community's configured zone and converted back to UTC
before they reach a query.
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def now_utc() -> datetime:
    """Return the current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are assumed to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_bounds_utc(year: int, month: int, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Half-open [start, end) UTC window covering one calendar month in ``tz``."""
    start = datetime(year, month, 1, tzinfo=tz)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, month + 1, 1, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def year_bounds_utc(year: int, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Half-open [start, end) UTC window covering one calendar year in ``tz``."""
    start = datetime(year, 1, 1, tzinfo=tz)
    end = datetime(year + 1, 1, 1, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def local_month_key(moment: datetime, tz: ZoneInfo) -> str:
    """``YYYY-MM`` for the calendar month containing ``moment`` in ``tz``."""
    local = to_utc(moment).astimezone(tz)
    return f"{local.year:04d}-{local.month:02d}"


def local_year_key(moment: datetime, tz: ZoneInfo) -> str:
    local = to_utc(moment).astimezone(tz)
    return f"{local.year:04d}"
