"""Leaderboard engine.

Two rankings over the approved catches of one event:

- Best single: each angler's heaviest catch.
- Top total: the sum of each angler's best ``bag_size`` catches, with the
  number of catches that contributed (never more than ``bag_size``).

Ranking functions are pure and operate on ``CatchWeight`` projections so
they can be exercised without a database. Ties between anglers break by
angler id ascending, which keeps output stable across re-runs.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import Catch, CatchStatus

DEFAULT_BAG_SIZE = 5


@dataclass(frozen=True)
class CatchWeight:
    catch_id: int
    angler_id: str
    weight: float


@dataclass(frozen=True)
class BestSingleEntry:
    angler_id: str
    best_single: float


@dataclass(frozen=True)
class TopTotalEntry:
    angler_id: str
    total: float
    catch_count: int


@dataclass(frozen=True)
class Leaderboards:
    best_single: list[BestSingleEntry]
    top_total: list[TopTotalEntry]

    @property
    def is_empty(self) -> bool:
        return not self.best_single and not self.top_total


def _group_by_angler(catches: Iterable[CatchWeight]) -> dict[str, list[CatchWeight]]:
    grouped: dict[str, list[CatchWeight]] = defaultdict(list)
    for catch in catches:
        grouped[catch.angler_id].append(catch)
    return grouped


def rank_best_single(
    catches: Iterable[CatchWeight],
    limit: int | None = None,
) -> list[BestSingleEntry]:
    """Rank anglers by their heaviest catch, heaviest first."""
    entries = [
        BestSingleEntry(angler_id=angler_id, best_single=max(c.weight for c in rows))
        for angler_id, rows in _group_by_angler(catches).items()
    ]
    entries.sort(key=lambda e: (-e.best_single, e.angler_id))
    return entries[:limit] if limit is not None else entries


def select_bag(rows: Iterable[CatchWeight], bag_size: int = DEFAULT_BAG_SIZE) -> list[CatchWeight]:
    """An angler's best ``bag_size`` catches; equal weights keep insertion order."""
    ordered = sorted(rows, key=lambda c: (-c.weight, c.catch_id))
    return ordered[:bag_size]


def rank_top_total(
    catches: Iterable[CatchWeight],
    bag_size: int = DEFAULT_BAG_SIZE,
    limit: int | None = None,
) -> list[TopTotalEntry]:
    """Rank anglers by the summed weight of their best ``bag_size`` catches.

    Anglers with fewer catches are scored on what they have; nothing is
    padded or penalized.
    """
    entries = []
    for angler_id, rows in _group_by_angler(catches).items():
        bag = select_bag(rows, bag_size)
        entries.append(
            TopTotalEntry(
                angler_id=angler_id,
                total=math.fsum(c.weight for c in bag),
                catch_count=len(bag),
            )
        )
    entries.sort(key=lambda e: (-e.total, e.angler_id))
    return entries[:limit] if limit is not None else entries


def load_approved_catches(session: Session, community_id: str, event_id: int) -> list[CatchWeight]:
    """Approved catches for one event, in insertion order."""
    stmt = (
        select(Catch.id, Catch.angler_id, Catch.weight)
        .where(
            Catch.community_id == community_id,
            Catch.event_id == event_id,
            Catch.status == CatchStatus.approved.value,
        )
        .order_by(Catch.id)
    )
    return [
        CatchWeight(catch_id=row.id, angler_id=row.angler_id, weight=float(row.weight))
        for row in session.execute(stmt)
    ]


def compute_leaderboards(
    session: Session,
    community_id: str,
    event_id: int,
    *,
    bag_size: int = DEFAULT_BAG_SIZE,
    limit: int | None = None,
) -> Leaderboards:
    """Both rankings for an event. ``limit=None`` returns every angler."""
    catches = load_approved_catches(session, community_id, event_id)
    return Leaderboards(
        best_single=rank_best_single(catches, limit=limit),
        top_total=rank_top_total(catches, bag_size=bag_size, limit=limit),
    )
