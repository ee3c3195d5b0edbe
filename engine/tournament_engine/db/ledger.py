"""Catch ledger and the short-lived photo uploads that back it."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..utils.datetime_utils import now_utc
from .base import Base


class CatchStatus(str, Enum):
    """Moderation state of a catch.

    Unmoderated deployments insert straight into ``approved``. Moderated
    ones start at ``pending``; the only transitions leave ``pending``.
    """

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Upload(Base):
    """A photo posted in a channel, waiting to be claimed by a weigh-in."""

    __tablename__ = "uploads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[str] = mapped_column(String(32), nullable=False)
    channel_id: Mapped[str] = mapped_column(String(32), nullable=False)
    angler_id: Mapped[str] = mapped_column(String(32), nullable=False)
    message_ref: Mapped[str] = mapped_column(String(64), nullable=False)
    media_ref: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_uploads_lookup", "community_id", "channel_id", "angler_id", "created_at"),
    )


class Catch(Base):
    """One weigh-in. Immutable apart from its moderation status."""

    __tablename__ = "catches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[str] = mapped_column(String(32), nullable=False)
    channel_id: Mapped[str] = mapped_column(String(32), nullable=False)
    event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("events.id"),
        nullable=False,
        index=True,
    )
    angler_id: Mapped[str] = mapped_column(String(32), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    media_ref: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=CatchStatus.approved.value, nullable=False)
    upload_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("uploads.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index("idx_catches_event_status", "community_id", "event_id", "status"),
    )
