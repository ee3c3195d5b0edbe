"""Per-community routing configuration and live-view handles."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ..utils.datetime_utils import now_utc
from .base import Base


class LiveDocument(str, Enum):
    """Externally rendered documents kept in sync with engine state."""

    best_single_current = "best_single_current"
    top_total_current = "top_total_current"
    monthly_winners = "monthly_winners"
    yearly_winners = "yearly_winners"


# Config column holding the last-known handle for each document
VIEW_HANDLE_COLUMNS: dict[LiveDocument, str] = {
    LiveDocument.best_single_current: "best_single_handle",
    LiveDocument.top_total_current: "top_total_handle",
    LiveDocument.monthly_winners: "monthly_winners_handle",
    LiveDocument.yearly_winners: "yearly_winners_handle",
}


class CommunityConfig(Base):
    """One row per community (chat server).

    Channel ids route submissions, live leaderboards and final results.
    Handles are advisory: a stale handle is repaired by recreating the
    document, never trusted as proof the message exists.
    """

    __tablename__ = "community_configs"

    community_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    submission_channel_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    live_channel_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    archive_channel_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    best_single_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    top_total_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    monthly_winners_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    yearly_winners_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False
    )

    def handle_for(self, document: LiveDocument) -> str | None:
        return getattr(self, VIEW_HANDLE_COLUMNS[document])
