"""Upload correlator persistence.

Photos are recorded as they are posted; a later weigh-in claims the
angler's most recent photo in the same channel within the recency window.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..db import Upload
from ..errors import InvalidInput
from ..logging import logger
from ..utils.datetime_utils import now_utc


def record_upload(
    session: Session,
    *,
    community_id: str,
    channel_id: str,
    angler_id: str,
    message_ref: str,
    media_ref: str,
    created_at: datetime | None = None,
) -> Upload:
    """Append an upload row. The only requirement is that media is attached."""
    if not media_ref:
        raise InvalidInput("Upload has no image attached.")
    upload = Upload(
        community_id=community_id,
        channel_id=channel_id,
        angler_id=angler_id,
        message_ref=message_ref,
        media_ref=media_ref,
        created_at=created_at or now_utc(),
    )
    session.add(upload)
    session.flush()
    logger.debug(
        "upload_recorded",
        community_id=community_id,
        channel_id=channel_id,
        angler_id=angler_id,
        upload_id=upload.id,
    )
    return upload


def resolve_recent_upload(
    session: Session,
    *,
    community_id: str,
    channel_id: str,
    angler_id: str,
    window: timedelta,
    now: datetime | None = None,
    unconsumed_only: bool = False,
) -> Upload | None:
    """Latest upload for the exact (community, channel, angler) within ``window``.

    Ties on ``created_at`` go to the most recently inserted row.
    """
    now = now or now_utc()
    stmt = select(Upload).where(
        Upload.community_id == community_id,
        Upload.channel_id == channel_id,
        Upload.angler_id == angler_id,
        Upload.created_at >= now - window,
    )
    if unconsumed_only:
        stmt = stmt.where(Upload.consumed_at.is_(None))
    stmt = stmt.order_by(Upload.created_at.desc(), Upload.id.desc()).limit(1)
    return session.execute(stmt).scalar_one_or_none()


def consume_upload(session: Session, upload_id: int, now: datetime | None = None) -> bool:
    """Atomically mark an upload as used.

    Returns False when another submission claimed it first.
    """
    result = session.execute(
        update(Upload)
        .where(Upload.id == upload_id, Upload.consumed_at.is_(None))
        .values(consumed_at=now or now_utc())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
