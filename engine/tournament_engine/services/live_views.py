"""Live view reconciler.

Keeps four externally rendered documents (current big bass, current total
bag, monthly winners, yearly winners) in step with the store. Handles are
cached on the community config; a handle that no longer resolves is
replaced by a freshly posted placeholder. Pushes are best effort: the
relational store stays the source of truth and a failed push waits for the
next natural trigger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, sessionmaker

from ..config import EngineConfig
from ..db import LiveDocument, session_scope
from ..errors import ExternalUnavailable, HandleNotFound
from ..logging import logger
from ..persistence.community import get_config, set_view_handle
from ..persistence.events import get_active_event
from ..utils.datetime_utils import local_month_key, local_year_key, now_utc
from .leaderboard import Leaderboards, compute_leaderboards
from .render import (
    ViewContent,
    best_single_view,
    monthly_winners_view,
    placeholder_view,
    top_total_view,
    yearly_winners_view,
)
from .standings import current_month, current_year, period_winners

CURRENT_EVENT_DOCUMENTS: tuple[LiveDocument, ...] = (
    LiveDocument.best_single_current,
    LiveDocument.top_total_current,
)
PERIOD_DOCUMENTS: tuple[LiveDocument, ...] = (
    LiveDocument.monthly_winners,
    LiveDocument.yearly_winners,
)
ALL_DOCUMENTS: tuple[LiveDocument, ...] = CURRENT_EVENT_DOCUMENTS + PERIOD_DOCUMENTS


class ChatSurface(Protocol):
    """Outbound side of the chat platform.

    Implementations raise ``HandleNotFound`` when a channel or message no
    longer exists and ``ExternalUnavailable`` for every other failure.
    """

    def fetch_message(self, channel_id: str, handle: str) -> None: ...

    def send_message(self, channel_id: str, content: ViewContent) -> str: ...

    def edit_message(self, channel_id: str, handle: str, content: ViewContent) -> None: ...


@dataclass(frozen=True)
class ViewTarget:
    channel_id: str
    handle: str


def build_documents(
    session: Session,
    community_id: str,
    documents: Iterable[LiveDocument],
    *,
    config: EngineConfig,
    tz: ZoneInfo,
    now: datetime,
) -> dict[LiveDocument, ViewContent]:
    """Render the requested documents from current store state."""
    wanted = list(dict.fromkeys(documents))
    contents: dict[LiveDocument, ViewContent] = {}

    if any(doc in CURRENT_EVENT_DOCUMENTS for doc in wanted):
        event = get_active_event(session, community_id)
        if event is not None:
            boards = compute_leaderboards(
                session,
                community_id,
                event.id,
                bag_size=config.bag_size,
                limit=config.leaderboard_limit,
            )
        else:
            boards = Leaderboards(best_single=[], top_total=[])
        event_name = event.name if event else None
        if LiveDocument.best_single_current in wanted:
            contents[LiveDocument.best_single_current] = best_single_view(event_name, boards.best_single)
        if LiveDocument.top_total_current in wanted:
            contents[LiveDocument.top_total_current] = top_total_view(
                event_name, boards.top_total, bag_size=config.bag_size
            )

    if LiveDocument.monthly_winners in wanted:
        month = current_month(now, tz)
        contents[LiveDocument.monthly_winners] = monthly_winners_view(
            month.key, period_winners(session, community_id, month)
        )
    if LiveDocument.yearly_winners in wanted:
        year = current_year(now, tz)
        contents[LiveDocument.yearly_winners] = yearly_winners_view(
            year.key, period_winners(session, community_id, year)
        )

    return {doc: contents[doc] for doc in wanted}


class LiveViewReconciler:
    def __init__(
        self,
        surface: ChatSurface,
        session_factory: sessionmaker[Session],
        *,
        config: EngineConfig,
        tz: ZoneInfo,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.surface = surface
        self.session_factory = session_factory
        self.config = config
        self.tz = tz
        self.clock = clock

    def _lookup(self, community_id: str, document: LiveDocument) -> tuple[str | None, str | None]:
        with session_scope(self.session_factory) as session:
            config = get_config(session, community_id)
            if config is None:
                return None, None
            return config.live_channel_id, config.handle_for(document)

    def _store_handle(self, community_id: str, document: LiveDocument, handle: str | None) -> None:
        with session_scope(self.session_factory) as session:
            set_view_handle(session, community_id, document, handle)

    def ensure(self, community_id: str, document: LiveDocument) -> ViewTarget | None:
        """Resolve the stored handle, recreating the document if it is stale.

        Returns None when the community has no live-display channel.
        Safe to call on every pass: a healthy handle is only fetched.

        Raises:
            ExternalUnavailable: If the surface fails for any reason other than a missing handle
            HandleNotFound: If the live-display channel itself is gone
        """
        channel_id, handle = self._lookup(community_id, document)
        if not channel_id:
            logger.debug("live_view_channel_unset", community_id=community_id, document=document.value)
            return None

        if handle:
            try:
                self.surface.fetch_message(channel_id, handle)
                return ViewTarget(channel_id=channel_id, handle=handle)
            except HandleNotFound:
                logger.info(
                    "live_view_handle_stale",
                    community_id=community_id,
                    document=document.value,
                    handle=handle,
                )

        now = self.clock()
        placeholder = placeholder_view(
            document, local_month_key(now, self.tz), local_year_key(now, self.tz)
        )
        new_handle = self.surface.send_message(channel_id, placeholder)
        self._store_handle(community_id, document, new_handle)
        logger.info(
            "live_view_created",
            community_id=community_id,
            document=document.value,
            handle=new_handle,
        )
        return ViewTarget(channel_id=channel_id, handle=new_handle)

    def push(self, community_id: str, document: LiveDocument, content: ViewContent) -> bool:
        """Render ``content`` into the document. Failures are logged, never raised."""
        try:
            target = self.ensure(community_id, document)
            if target is None:
                return False
            try:
                self.surface.edit_message(target.channel_id, target.handle, content)
            except HandleNotFound:
                # Deleted between resolve and edit: forget it and recreate once
                self._store_handle(community_id, document, None)
                target = self.ensure(community_id, document)
                if target is None:
                    return False
                self.surface.edit_message(target.channel_id, target.handle, content)
        except (ExternalUnavailable, HandleNotFound) as exc:
            logger.warning(
                "live_view_push_failed",
                community_id=community_id,
                document=document.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        return True

    def reconcile(
        self,
        community_id: str,
        documents: Iterable[LiveDocument] = ALL_DOCUMENTS,
    ) -> dict[LiveDocument, bool]:
        """Rebuild and push the given documents. Returns per-document success."""
        with session_scope(self.session_factory) as session:
            contents = build_documents(
                session,
                community_id,
                documents,
                config=self.config,
                tz=self.tz,
                now=self.clock(),
            )
        results = {
            document: self.push(community_id, document, content)
            for document, content in contents.items()
        }
        logger.debug(
            "live_views_reconciled",
            community_id=community_id,
            pushed=[doc.value for doc, ok in results.items() if ok],
            failed=[doc.value for doc, ok in results.items() if not ok],
        )
        return results
