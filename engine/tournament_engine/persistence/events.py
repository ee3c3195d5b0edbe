"""Event lifecycle persistence.

Open and close are single-statement transitions guarded by the store:
``open_event`` force-closes any active event in the same transaction that
inserts the new one, and a partial unique index rejects a second active
row if two opens ever race.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import Event
from ..errors import Conflict, EventNotFound, InvalidInput
from ..logging import logger
from ..utils.datetime_utils import now_utc


@dataclass
class OpenedEvent:
    event: Event
    # Events that were still active and got force-closed by this open
    closed_event_ids: list[int] = field(default_factory=list)


def _reload_events(session: Session, event_ids: list[int]) -> list[Event]:
    # Bulk UPDATEs bypass the identity map; re-read so callers see stored state
    stmt = (
        select(Event)
        .where(Event.id.in_(event_ids))
        .order_by(Event.id)
        .execution_options(populate_existing=True)
    )
    return list(session.execute(stmt).scalars())


def get_active_event(session: Session, community_id: str) -> Event | None:
    """Return the community's open event, or None."""
    stmt = (
        select(Event)
        .where(Event.community_id == community_id, Event.active.is_(True))
        .order_by(Event.id.desc())
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def get_event(session: Session, community_id: str, event_id: int) -> Event:
    """Fetch an event scoped to its community.

    Raises:
        EventNotFound: If the id is unknown or belongs to another community
    """
    event = session.get(Event, event_id)
    if event is None or event.community_id != community_id:
        raise EventNotFound(f"No tournament with id {event_id}.")
    return event


def open_event(
    session: Session,
    community_id: str,
    name: str,
    now: datetime | None = None,
) -> OpenedEvent:
    """Close any active event for the community, then open a new one."""
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Tournament name required.")
    now = now or now_utc()

    stale_ids = list(
        session.execute(
            select(Event.id).where(Event.community_id == community_id, Event.active.is_(True))
        ).scalars()
    )
    if stale_ids:
        session.execute(
            update(Event)
            .where(Event.id.in_(stale_ids))
            .values(active=False, closed_at=func.coalesce(Event.closed_at, now))
            .execution_options(synchronize_session=False)
        )
        _reload_events(session, stale_ids)
        logger.info(
            "event_force_closed",
            community_id=community_id,
            event_ids=stale_ids,
        )

    event = Event(community_id=community_id, name=name, active=True, opened_at=now)
    session.add(event)
    try:
        session.flush()
    except IntegrityError as exc:
        logger.exception("event_open_conflict", community_id=community_id, error=str(exc))
        raise Conflict("Another tournament was opened at the same time.") from exc

    logger.info("event_opened", community_id=community_id, event_id=event.id, name=name)
    return OpenedEvent(event=event, closed_event_ids=stale_ids)


def close_event(
    session: Session,
    community_id: str,
    event_id: int,
    now: datetime | None = None,
) -> Event:
    """Close an active event.

    Raises:
        EventNotFound: If no active event matches ``event_id`` in the community
    """
    now = now or now_utc()
    result = session.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.community_id == community_id,
            Event.active.is_(True),
        )
        .values(active=False, closed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise EventNotFound(f"Tournament {event_id} is not open.")

    event = _reload_events(session, [event_id])[0]
    logger.info("event_closed", community_id=community_id, event_id=event_id)
    return event


def list_events(session: Session, community_id: str, limit: int = 25) -> list[Event]:
    """Most recent events first."""
    stmt = (
        select(Event)
        .where(Event.community_id == community_id)
        .order_by(Event.id.desc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars())
