"""Tournament service: the entry point the chat gateway talks to.

Every operation commits its own rows before touching the chat surface, so
a slow or failed push can never leave the ledger or snapshots half
written. Pushes happen afterwards on a best-effort basis:

- catch submitted / status changed: current-event documents
- event opened: current-event documents (plus period documents when an
  older event was force-closed)
- event closed, channels configured, data wiped: all four documents
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..config import EngineConfig, settings
from ..db import CatchStatus, LiveDocument, get_session_factory, session_scope
from ..errors import (
    ExternalUnavailable,
    HandleNotFound,
    NoActiveEvent,
    PermissionDenied,
    TournamentError,
    WrongChannel,
)
from ..logging import logger
from ..persistence import (
    clear_view_handles,
    close_event,
    get_active_event,
    get_config,
    get_event,
    open_event,
    record_upload,
    set_catch_status,
    snapshot_event,
    submit_catch,
    upsert_config,
    wipe_community_data,
)
from ..utils.datetime_utils import now_utc
from ..utils.parsing import is_image_content_type, parse_channel_id
from .leaderboard import Leaderboards, compute_leaderboards
from .live_views import (
    ALL_DOCUMENTS,
    CURRENT_EVENT_DOCUMENTS,
    ChatSurface,
    LiveViewReconciler,
)
from .render import ViewContent, final_results_views, receipt_view
from .standings import (
    Period,
    PeriodStanding,
    PeriodWinners,
    month_period,
    period_standings,
    pick_winners,
    year_period,
)


@dataclass(frozen=True)
class Actor:
    """Who is calling: the gateway resolves admin rights from platform permissions."""

    community_id: str
    user_id: str
    is_admin: bool = False


@dataclass(frozen=True)
class Attachment:
    url: str
    content_type: str | None = None


@dataclass(frozen=True)
class EventSummary:
    id: int
    name: str
    active: bool


@dataclass(frozen=True)
class CatchReceipt:
    catch_id: int
    event_id: int
    event_name: str
    angler_id: str
    weight: float
    notes: str | None
    media_ref: str
    status: str

    def render(self) -> ViewContent:
        return receipt_view(
            event_name=self.event_name,
            angler_id=self.angler_id,
            weight=self.weight,
            notes=self.notes,
            media_ref=self.media_ref,
            status=self.status,
        )


@dataclass(frozen=True)
class ChannelRouting:
    submission_channel_id: str
    live_channel_id: str
    archive_channel_id: str


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        logger.info("admin_required", community_id=actor.community_id, user_id=actor.user_id)
        raise PermissionDenied()


class TournamentService:
    def __init__(
        self,
        surface: ChatSurface | None = None,
        session_factory: sessionmaker[Session] | None = None,
        *,
        config: EngineConfig | None = None,
        tz: ZoneInfo | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.session_factory = session_factory or get_session_factory()
        self.config = config or settings.engine_config
        self.tz = tz or settings.tz
        self.clock = clock
        self.surface = surface
        self.views = (
            LiveViewReconciler(
                surface,
                self.session_factory,
                config=self.config,
                tz=self.tz,
                clock=clock,
            )
            if surface is not None
            else None
        )

    def _session(self):
        return session_scope(self.session_factory)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def refresh_views(
        self,
        community_id: str,
        documents: Iterable[LiveDocument] = ALL_DOCUMENTS,
    ) -> dict[LiveDocument, bool]:
        """Run one reconciliation pass. No-op when no chat surface is attached."""
        if self.views is None:
            return {}
        return self.views.reconcile(community_id, documents)

    def _post_final_results(self, community_id: str, event_id: int) -> int:
        """Post final rankings to the archive channel. Returns messages posted."""
        if self.surface is None:
            return 0
        with self._session() as session:
            config = get_config(session, community_id)
            channel_id = config.archive_channel_id if config else None
            if not channel_id:
                return 0
            event = get_event(session, community_id, event_id)
            boards = compute_leaderboards(
                session,
                community_id,
                event_id,
                bag_size=self.config.bag_size,
                limit=self.config.leaderboard_limit,
            )
            views = final_results_views(
                event.name, boards.best_single, boards.top_total, bag_size=self.config.bag_size
            )

        posted = 0
        try:
            for view in views:
                self.surface.send_message(channel_id, view)
                posted += 1
        except (ExternalUnavailable, HandleNotFound) as exc:
            logger.warning(
                "final_results_post_failed",
                community_id=community_id,
                event_id=event_id,
                posted=posted,
                error=str(exc),
            )
        return posted

    # ------------------------------------------------------------------
    # Event lifecycle
    # ------------------------------------------------------------------

    def get_active_event(self, community_id: str) -> EventSummary | None:
        with self._session() as session:
            event = get_active_event(session, community_id)
            return EventSummary(id=event.id, name=event.name, active=event.active) if event else None

    def open_event(self, actor: Actor, name: str) -> EventSummary:
        """Start a tournament, closing (and freezing) any that was still open."""
        _require_admin(actor)
        community_id = actor.community_id
        with self._session() as session:
            opened = open_event(session, community_id, name, now=self.clock())
            summary = EventSummary(id=opened.event.id, name=opened.event.name, active=True)
            closed_ids = list(opened.closed_event_ids)

        for event_id in closed_ids:
            self._snapshot_after_close(community_id, event_id)

        self.refresh_views(community_id, ALL_DOCUMENTS if closed_ids else CURRENT_EVENT_DOCUMENTS)
        return summary

    def close_event(self, actor: Actor) -> EventSummary:
        """End the active tournament, freeze its results and publish finals."""
        _require_admin(actor)
        community_id = actor.community_id
        with self._session() as session:
            active = get_active_event(session, community_id)
            if active is None:
                raise NoActiveEvent("No active tournament to end.")
            event = close_event(session, community_id, active.id, now=self.clock())
            summary = EventSummary(id=event.id, name=event.name, active=False)

        self._snapshot_after_close(community_id, summary.id)
        self._post_final_results(community_id, summary.id)
        self.refresh_views(community_id, ALL_DOCUMENTS)
        return summary

    def snapshot(self, community_id: str, event_id: int) -> int:
        """Freeze results for a closed event. Safe to retry."""
        with self._session() as session:
            return snapshot_event(session, community_id, event_id, bag_size=self.config.bag_size)

    def _snapshot_after_close(self, community_id: str, event_id: int) -> bool:
        """Freeze a just-closed event without failing the close itself.

        The close is already committed; a failed freeze is logged and can be
        retried through ``snapshot``.
        """
        try:
            self.snapshot(community_id, event_id)
        except (TournamentError, SQLAlchemyError) as exc:
            logger.critical(
                "snapshot_after_close_failed",
                community_id=community_id,
                event_id=event_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Uploads and catches
    # ------------------------------------------------------------------

    def record_upload(
        self,
        community_id: str,
        channel_id: str,
        angler_id: str,
        message_ref: str,
        attachments: Sequence[Attachment],
    ) -> int | None:
        """Remember the first image attached to a posted message.

        Returns the upload id, or None when the message carried no image.
        """
        image = next((a for a in attachments if is_image_content_type(a.content_type)), None)
        if image is None:
            return None
        with self._session() as session:
            upload = record_upload(
                session,
                community_id=community_id,
                channel_id=channel_id,
                angler_id=angler_id,
                message_ref=message_ref,
                media_ref=image.url,
                created_at=self.clock(),
            )
            return upload.id

    def submit_catch(
        self,
        community_id: str,
        channel_id: str,
        angler_id: str,
        weight: str | float,
        notes: str | None = None,
    ) -> CatchReceipt:
        """Log a weigh-in against the active tournament."""
        with self._session() as session:
            config = get_config(session, community_id)
            if config and config.submission_channel_id and channel_id != config.submission_channel_id:
                raise WrongChannel(config.submission_channel_id)
            submitted = submit_catch(
                session,
                community_id=community_id,
                channel_id=channel_id,
                angler_id=angler_id,
                weight=weight,
                notes=notes,
                config=self.config,
                now=self.clock(),
            )
            catch, event = submitted.catch, submitted.event
            receipt = CatchReceipt(
                catch_id=catch.id,
                event_id=event.id,
                event_name=event.name,
                angler_id=angler_id,
                weight=catch.weight,
                notes=catch.notes,
                media_ref=catch.media_ref,
                status=catch.status,
            )

        if receipt.status == CatchStatus.approved.value:
            self.refresh_views(community_id, CURRENT_EVENT_DOCUMENTS)
        return receipt

    def set_catch_status(self, actor: Actor, catch_id: int, status: CatchStatus | str) -> bool:
        """Approve or reject a pending weigh-in (moderated deployments only).

        Returns whether the status changed.
        """
        _require_admin(actor)
        if not self.config.moderation_enabled:
            raise PermissionDenied("Weigh-in moderation is disabled on this server.")
        community_id = actor.community_id
        with self._session() as session:
            catch, changed = set_catch_status(session, community_id, catch_id, status)
            event = get_event(session, community_id, catch.event_id)
            event_closed = event.is_closed
            event_id = event.id

        if not changed:
            return False
        if event_closed:
            # Frozen results are a pure function of the ledger; refreeze them
            self._snapshot_after_close(community_id, event_id)
            self.refresh_views(community_id, ALL_DOCUMENTS)
        else:
            self.refresh_views(community_id, CURRENT_EVENT_DOCUMENTS)
        return True

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def leaderboards(self, community_id: str, event_id: int | None = None) -> Leaderboards:
        """Displayed rankings for an event (the active one by default)."""
        with self._session() as session:
            if event_id is None:
                active = get_active_event(session, community_id)
                if active is None:
                    raise NoActiveEvent()
                event_id = active.id
            else:
                get_event(session, community_id, event_id)
            return compute_leaderboards(
                session,
                community_id,
                event_id,
                bag_size=self.config.bag_size,
                limit=self.config.leaderboard_limit,
            )

    def standings(self, community_id: str, period: Period) -> list[PeriodStanding]:
        with self._session() as session:
            return period_standings(session, community_id, period)

    def monthly_standings(self, community_id: str, year_month: str) -> list[PeriodStanding]:
        return self.standings(community_id, month_period(year_month, self.tz))

    def yearly_standings(self, community_id: str, year: str | int) -> list[PeriodStanding]:
        return self.standings(community_id, year_period(year, self.tz))

    def period_winners(self, community_id: str, period: Period) -> PeriodWinners:
        return pick_winners(period, self.standings(community_id, period))

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def configure_channels(
        self,
        actor: Actor,
        submission: str,
        live_display: str,
        archive: str,
    ) -> ChannelRouting:
        """Set channel routing from mentions or raw ids.

        Moving the live-display channel drops every stored document handle
        so the documents are recreated in the new channel.
        """
        _require_admin(actor)
        routing = ChannelRouting(
            submission_channel_id=parse_channel_id(submission),
            live_channel_id=parse_channel_id(live_display),
            archive_channel_id=parse_channel_id(archive),
        )
        community_id = actor.community_id
        with self._session() as session:
            previous = get_config(session, community_id)
            moved = previous is None or previous.live_channel_id != routing.live_channel_id
            upsert_config(
                session,
                community_id,
                submission_channel_id=routing.submission_channel_id,
                live_channel_id=routing.live_channel_id,
                archive_channel_id=routing.archive_channel_id,
            )
            if moved:
                clear_view_handles(session, community_id)

        self.refresh_views(community_id, ALL_DOCUMENTS)
        return routing

    def wipe_community(self, actor: Actor) -> dict:
        """Remove every event, catch and frozen result for the actor's community."""
        _require_admin(actor)
        with self._session() as session:
            summary = wipe_community_data(session, actor.community_id)
        self.refresh_views(actor.community_id, ALL_DOCUMENTS)
        return summary
