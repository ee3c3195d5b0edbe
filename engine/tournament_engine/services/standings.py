"""Period aggregator: monthly and yearly standings.

Standings are built exclusively from frozen ``EventResult`` rows joined to
closed events. Nothing here imports the catch ledger: an event counts only
once it has been closed and snapshotted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db import Event, EventResult
from ..errors import InvalidPeriod
from ..utils.datetime_utils import (
    local_month_key,
    local_year_key,
    month_bounds_utc,
    year_bounds_utc,
)

PeriodKind = Literal["month", "year"]

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_YEAR_RE = re.compile(r"^(\d{4})$")

# Calendar years that convert cleanly between any zone and UTC
MIN_YEAR = 1900
MAX_YEAR = 9998


@dataclass(frozen=True)
class Period:
    kind: PeriodKind
    key: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class PeriodStanding:
    angler_id: str
    total: float
    best_single: float
    events: int


@dataclass(frozen=True)
class PeriodWinners:
    period: Period
    total_winner: PeriodStanding | None
    single_winner: PeriodStanding | None


def month_period(value: str, tz: ZoneInfo) -> Period:
    match = _MONTH_RE.match((value or "").strip())
    if not match:
        raise InvalidPeriod(f"Month must look like YYYY-MM, got {value!r}.")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidPeriod(f"Month must be between 01 and 12, got {value!r}.")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriod(f"Year out of range in {value!r}.")
    start, end = month_bounds_utc(year, month, tz)
    return Period(kind="month", key=f"{year:04d}-{month:02d}", start=start, end=end)


def year_period(value: str | int, tz: ZoneInfo) -> Period:
    match = _YEAR_RE.match(str(value).strip())
    if not match:
        raise InvalidPeriod(f"Year must look like YYYY, got {value!r}.")
    year = int(match.group(1))
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriod(f"Year out of range in {value!r}.")
    start, end = year_bounds_utc(year, tz)
    return Period(kind="year", key=f"{year:04d}", start=start, end=end)


def parse_period(value: str, tz: ZoneInfo) -> Period:
    """Accept either ``YYYY-MM`` or ``YYYY``."""
    text = (value or "").strip()
    if _MONTH_RE.match(text):
        return month_period(text, tz)
    if _YEAR_RE.match(text):
        return year_period(text, tz)
    raise InvalidPeriod()


def current_month(now: datetime, tz: ZoneInfo) -> Period:
    return month_period(local_month_key(now, tz), tz)


def current_year(now: datetime, tz: ZoneInfo) -> Period:
    return year_period(local_year_key(now, tz), tz)


def period_standings(session: Session, community_id: str, period: Period) -> list[PeriodStanding]:
    """Sum of totals and best single per angler across closed events in the period.

    Ordered by summed total, then best single, both descending; angler id
    ascending settles any remaining tie.
    """
    total = func.sum(EventResult.total_of_top5).label("total")
    best_single = func.max(EventResult.best_single).label("best_single")
    events = func.count(EventResult.event_id).label("events")
    stmt = (
        select(EventResult.angler_id, total, best_single, events)
        .join(Event, Event.id == EventResult.event_id)
        .where(
            EventResult.community_id == community_id,
            Event.community_id == community_id,
            Event.active.is_(False),
            Event.closed_at.is_not(None),
            Event.closed_at >= period.start,
            Event.closed_at < period.end,
        )
        .group_by(EventResult.angler_id)
        .order_by(total.desc(), best_single.desc(), EventResult.angler_id)
    )
    return [
        PeriodStanding(
            angler_id=row.angler_id,
            total=float(row.total or 0.0),
            best_single=float(row.best_single or 0.0),
            events=int(row.events),
        )
        for row in session.execute(stmt)
    ]


def monthly_standings(
    session: Session, community_id: str, year_month: str, tz: ZoneInfo
) -> list[PeriodStanding]:
    return period_standings(session, community_id, month_period(year_month, tz))


def yearly_standings(
    session: Session, community_id: str, year: str | int, tz: ZoneInfo
) -> list[PeriodStanding]:
    return period_standings(session, community_id, year_period(year, tz))


def pick_winners(period: Period, standings: list[PeriodStanding]) -> PeriodWinners:
    """Top angler by total and, independently, top angler by best single."""
    if not standings:
        return PeriodWinners(period=period, total_winner=None, single_winner=None)
    total_winner = min(standings, key=lambda s: (-s.total, -s.best_single, s.angler_id))
    single_winner = min(standings, key=lambda s: (-s.best_single, -s.total, s.angler_id))
    return PeriodWinners(period=period, total_winner=total_winner, single_winner=single_winner)


def period_winners(session: Session, community_id: str, period: Period) -> PeriodWinners:
    return pick_winners(period, period_standings(session, community_id, period))
