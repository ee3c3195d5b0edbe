"""Snapshot aggregator.

Freezes each angler's results for a closed event into ``event_results``.
The upsert is keyed by (event_id, angler_id), so re-running a snapshot
after a partial failure rewrites the same rows with the same values.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import EventResult
from ..errors import Conflict, EventStillOpen
from ..logging import logger
from ..services.leaderboard import DEFAULT_BAG_SIZE, compute_leaderboards
from ..utils.datetime_utils import now_utc
from ..utils.db_queries import upsert_insert
from .events import get_event


def snapshot_event(
    session: Session,
    community_id: str,
    event_id: int,
    bag_size: int = DEFAULT_BAG_SIZE,
) -> int:
    """Write one EventResult per angler who appears in either ranking.

    Returns the number of rows written.

    Raises:
        EventNotFound: If the event does not exist in the community
        EventStillOpen: If the event has not been closed
        Conflict: If the store reports an integrity violation
    """
    event = get_event(session, community_id, event_id)
    if not event.is_closed:
        raise EventStillOpen()

    # Uncapped: every angler is frozen, not only those shown on screen
    boards = compute_leaderboards(session, community_id, event_id, bag_size=bag_size, limit=None)
    singles = {
        entry.angler_id: (rank, entry) for rank, entry in enumerate(boards.best_single, start=1)
    }
    totals = {
        entry.angler_id: (rank, entry) for rank, entry in enumerate(boards.top_total, start=1)
    }

    anglers = sorted(set(singles) | set(totals))
    for angler_id in anglers:
        single_rank, single = singles.get(angler_id, (None, None))
        total_rank, total = totals.get(angler_id, (None, None))
        stmt = upsert_insert(session, EventResult).values(
            community_id=community_id,
            event_id=event_id,
            angler_id=angler_id,
            best_single=single.best_single if single else 0.0,
            total_of_top5=total.total if total else 0.0,
            catch_count=total.catch_count if total else 0,
            best_single_rank=single_rank,
            top_total_rank=total_rank,
            created_at=now_utc(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["event_id", "angler_id"],
            set_={
                "best_single": stmt.excluded.best_single,
                "total_of_top5": stmt.excluded.total_of_top5,
                "catch_count": stmt.excluded.catch_count,
                "best_single_rank": stmt.excluded.best_single_rank,
                "top_total_rank": stmt.excluded.top_total_rank,
            },
        )
        try:
            session.execute(stmt)
        except IntegrityError as exc:
            logger.critical(
                "snapshot_integrity_violation",
                community_id=community_id,
                event_id=event_id,
                angler_id=angler_id,
                error=str(exc),
            )
            raise Conflict(f"Snapshot for tournament {event_id} violated a constraint.") from exc

    session.flush()
    logger.info(
        "snapshot_written",
        community_id=community_id,
        event_id=event_id,
        rows=len(anglers),
    )
    return len(anglers)


def get_event_results(session: Session, event_id: int) -> list[EventResult]:
    """Frozen rows for an event, best total first."""
    stmt = (
        select(EventResult)
        .where(EventResult.event_id == event_id)
        .order_by(
            EventResult.total_of_top5.desc(),
            EventResult.best_single.desc(),
            EventResult.angler_id,
        )
    )
    return list(session.execute(stmt).scalars())
