"""Catch ledger persistence.

A catch is always filed against the event that is active at submission
time and is never reassigned. Only its moderation status may change.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import EngineConfig
from ..db import Catch, CatchStatus, Event
from ..errors import (
    CatchNotFound,
    InvalidInput,
    InvalidTransition,
    MissingEvidence,
    NoActiveEvent,
)
from ..logging import logger
from ..utils.datetime_utils import now_utc
from ..utils.parsing import clean_optional_text, parse_weight
from .events import get_active_event
from .uploads import consume_upload, resolve_recent_upload


@dataclass(frozen=True)
class SubmittedCatch:
    catch: Catch
    event: Event


def submit_catch(
    session: Session,
    *,
    community_id: str,
    channel_id: str,
    angler_id: str,
    weight: str | float,
    notes: str | None,
    config: EngineConfig,
    now: datetime | None = None,
) -> SubmittedCatch:
    """Write a weigh-in for the community's active event.

    Raises:
        NoActiveEvent: If no event is open
        InvalidWeight: If ``weight`` is not a positive finite number
        MissingEvidence: If no recent photo resolves for the angler in this channel
    """
    now = now or now_utc()
    event = get_active_event(session, community_id)
    if event is None:
        raise NoActiveEvent()

    parsed_weight = parse_weight(weight)

    upload = resolve_recent_upload(
        session,
        community_id=community_id,
        channel_id=channel_id,
        angler_id=angler_id,
        window=timedelta(minutes=config.upload_window_minutes),
        now=now,
        unconsumed_only=config.consume_uploads,
    )
    if upload is None:
        raise MissingEvidence()
    if config.consume_uploads and not consume_upload(session, upload.id, now=now):
        # Lost the race for this photo to a concurrent submission
        raise MissingEvidence()

    status = CatchStatus.pending if config.moderation_enabled else CatchStatus.approved
    catch = Catch(
        community_id=community_id,
        channel_id=channel_id,
        event_id=event.id,
        angler_id=angler_id,
        weight=parsed_weight,
        media_ref=upload.media_ref,
        notes=clean_optional_text(notes),
        status=status.value,
        upload_id=upload.id,
        created_at=now,
    )
    session.add(catch)
    session.flush()

    logger.info(
        "catch_submitted",
        community_id=community_id,
        event_id=event.id,
        catch_id=catch.id,
        angler_id=angler_id,
        weight=parsed_weight,
        status=status.value,
    )
    return SubmittedCatch(catch=catch, event=event)


def get_catch(session: Session, community_id: str, catch_id: int) -> Catch:
    catch = session.get(Catch, catch_id)
    if catch is None or catch.community_id != community_id:
        raise CatchNotFound(f"No weigh-in with id {catch_id}.")
    return catch


def set_catch_status(
    session: Session,
    community_id: str,
    catch_id: int,
    status: CatchStatus | str,
) -> tuple[Catch, bool]:
    """Move a pending catch to approved or rejected.

    Re-applying the current status is a no-op. Returns the catch and whether
    its status changed.

    Raises:
        CatchNotFound: If the catch is unknown in this community
        InvalidTransition: If the catch was already decided differently
    """
    try:
        target = CatchStatus(status)
    except ValueError as exc:
        raise InvalidInput(f"Unknown weigh-in status: {status}") from exc
    if target is CatchStatus.pending:
        raise InvalidTransition("A weigh-in cannot be moved back to pending.")

    catch = get_catch(session, community_id, catch_id)
    if catch.status == target.value:
        return catch, False
    if catch.status != CatchStatus.pending.value:
        raise InvalidTransition(f"Weigh-in {catch_id} is already {catch.status}.")

    catch.status = target.value
    session.flush()
    logger.info(
        "catch_status_changed",
        community_id=community_id,
        catch_id=catch_id,
        event_id=catch.event_id,
        status=target.value,
    )
    return catch, True


def list_pending_catches(session: Session, community_id: str, event_id: int) -> list[Catch]:
    stmt = (
        select(Catch)
        .where(
            Catch.community_id == community_id,
            Catch.event_id == event_id,
            Catch.status == CatchStatus.pending.value,
        )
        .order_by(Catch.id)
    )
    return list(session.execute(stmt).scalars())
