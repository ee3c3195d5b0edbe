"""Community configuration persistence.

Configuration rows are upserted, never deleted. Fields omitted from an
upsert keep their stored values.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..db import VIEW_HANDLE_COLUMNS, CommunityConfig, LiveDocument
from ..logging import logger
from ..utils.datetime_utils import now_utc
from ..utils.db_queries import upsert_insert

_CONFIG_FIELDS = (
    "submission_channel_id",
    "live_channel_id",
    "archive_channel_id",
    *VIEW_HANDLE_COLUMNS.values(),
)


def get_config(session: Session, community_id: str) -> CommunityConfig | None:
    return session.get(CommunityConfig, community_id)


def upsert_config(session: Session, community_id: str, **patch: str | None) -> CommunityConfig:
    """Insert or update a community's config.

    ``None`` values never overwrite stored ones; use ``clear_view_handles``
    to reset document handles.
    """
    unknown = set(patch) - set(_CONFIG_FIELDS)
    if unknown:
        raise ValueError(f"Unknown config fields: {sorted(unknown)}")

    now = now_utc()
    values = {name: patch.get(name) for name in _CONFIG_FIELDS}
    stmt = upsert_insert(session, CommunityConfig).values(
        community_id=community_id,
        created_at=now,
        updated_at=now,
        **values,
    )
    table = CommunityConfig.__table__
    set_ = {
        name: func.coalesce(getattr(stmt.excluded, name), table.c[name])
        for name in _CONFIG_FIELDS
    }
    set_["updated_at"] = stmt.excluded.updated_at
    session.execute(stmt.on_conflict_do_update(index_elements=["community_id"], set_=set_))
    session.flush()

    config = session.get(CommunityConfig, community_id, populate_existing=True)
    logger.info(
        "community_config_upserted",
        community_id=community_id,
        fields=sorted(k for k, v in patch.items() if v is not None),
    )
    return config


def set_view_handle(
    session: Session,
    community_id: str,
    document: LiveDocument,
    handle: str | None,
) -> None:
    """Persist the external handle for one live document."""
    column = VIEW_HANDLE_COLUMNS[document]
    session.execute(
        update(CommunityConfig)
        .where(CommunityConfig.community_id == community_id)
        .values({column: handle, "updated_at": now_utc()})
        .execution_options(synchronize_session=False)
    )


def clear_view_handles(session: Session, community_id: str) -> None:
    """Forget every document handle so the next reconciliation recreates them."""
    session.execute(
        update(CommunityConfig)
        .where(CommunityConfig.community_id == community_id)
        .values({column: None for column in VIEW_HANDLE_COLUMNS.values()} | {"updated_at": now_utc()})
        .execution_options(synchronize_session=False)
    )


def list_community_ids(session: Session) -> list[str]:
    stmt = select(CommunityConfig.community_id).order_by(CommunityConfig.community_id)
    return list(session.execute(stmt).scalars())
