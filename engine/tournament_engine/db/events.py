"""Tournament events and their frozen per-angler results.

Lifecycle: open -> closed (terminal). At most one open event per community,
enforced by a partial unique index as well as by ``open_event``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import text

from ..utils.datetime_utils import now_utc
from .base import Base


class EventStatus(str, Enum):
    open = "open"
    closed = "closed"


class Event(Base):
    """One tournament instance within a community."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_events_one_active_per_community",
            "community_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
        Index("idx_events_community_closed", "community_id", "closed_at"),
    )

    @property
    def status(self) -> EventStatus:
        return EventStatus.open if self.active else EventStatus.closed

    @property
    def is_closed(self) -> bool:
        return not self.active and self.closed_at is not None


class EventResult(Base):
    """Frozen results for one angler in one closed event.

    Derived state written only by the snapshot aggregator. Rows are a pure
    function of the ledger at closure time, so re-snapshotting overwrites
    them with identical values.
    """

    __tablename__ = "event_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("events.id"),
        nullable=False,
        index=True,
    )
    angler_id: Mapped[str] = mapped_column(String(32), nullable=False)
    best_single: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_of_top5: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    catch_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # 1-based positions in the event's full rankings; None when absent from a ranking
    best_single_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    top_total_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "angler_id", name="uq_event_results_event_angler"),
        Index("idx_event_results_community_angler", "community_id", "angler_id"),
    )
