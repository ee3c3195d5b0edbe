"""Administrative persistence operations."""

from __future__ import annotations

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..db import Catch, Event, EventResult
from ..logging import logger


def wipe_community_data(session: Session, community_id: str) -> dict:
    """Delete every catch, frozen result and event for one community.

    Children go first so foreign keys never point at a removed event.
    Configuration and uploads are left in place.

    Returns:
        Dict with per-table deletion counts
    """
    results_deleted = session.execute(
        delete(EventResult).where(EventResult.community_id == community_id)
    ).rowcount
    catches_deleted = session.execute(
        delete(Catch).where(Catch.community_id == community_id)
    ).rowcount
    events_deleted = session.execute(
        delete(Event).where(Event.community_id == community_id)
    ).rowcount
    session.flush()

    summary = {
        "community_id": community_id,
        "event_results": results_deleted,
        "catches": catches_deleted,
        "events": events_deleted,
    }
    logger.warning("community_data_wiped", **summary)
    return summary
