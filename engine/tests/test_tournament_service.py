"""Tests for services/tournament.py module."""

from __future__ import annotations

from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import func, select

from conftest import ARCHIVE_CHANNEL, CHANNEL, COMMUNITY, LIVE_CHANNEL, photo
from tournament_engine.config import EngineConfig
from tournament_engine.db import Event, EventResult, LiveDocument, session_scope
from tournament_engine.errors import (
    Conflict,
    MissingEvidence,
    NoActiveEvent,
    PermissionDenied,
    WrongChannel,
)
from tournament_engine.persistence.community import get_config
from tournament_engine.services.tournament import Actor, Attachment, TournamentService


def configure(service, admin):
    return service.configure_channels(
        admin,
        submission=f"<#{CHANNEL}>",
        live_display=LIVE_CHANNEL,
        archive=f"<#{ARCHIVE_CHANNEL}>",
    )


def weigh_in(service, clock, angler, weight, notes=None):
    service.record_upload(COMMUNITY, CHANNEL, angler, f"msg-{angler}-{weight}", photo())
    clock.advance(minutes=1)
    return service.submit_catch(COMMUNITY, CHANNEL, angler, str(weight), notes)


def live_text(service, surface, document):
    with session_scope(service.session_factory) as session:
        handle = get_config(session, COMMUNITY).handle_for(document)
    return surface.content(LIVE_CHANNEL, handle).text


def count(service, model, *criteria):
    with session_scope(service.session_factory) as session:
        return session.execute(select(func.count()).select_from(model).where(*criteria)).scalar_one()


class TestConfigureChannels:
    """Tests for TournamentService.configure_channels."""

    def test_routing_parsed_and_documents_created(self, service, surface, admin):
        routing = configure(service, admin)

        assert routing.submission_channel_id == CHANNEL
        assert routing.archive_channel_id == ARCHIVE_CHANNEL
        assert len([s for s in surface.sent if s[0] == LIVE_CHANNEL]) == 4
        assert "No Active Tournament" in live_text(service, surface, LiveDocument.best_single_current)

    def test_moving_live_channel_recreates_documents(self, service, surface, admin):
        configure(service, admin)
        other_live = "100000000000000009"

        service.configure_channels(admin, CHANNEL, other_live, ARCHIVE_CHANNEL)

        assert len([s for s in surface.sent if s[0] == other_live]) == 4

    def test_admin_only(self, service, member):
        with pytest.raises(PermissionDenied):
            configure(service, member)


class TestEventLifecycle:
    """Tests for opening and closing tournaments through the service."""

    def test_open_requires_admin(self, service, member):
        with pytest.raises(PermissionDenied):
            service.open_event(member, "Classic")

    def test_open_updates_current_documents(self, service, surface, admin):
        configure(service, admin)

        summary = service.open_event(admin, "Spring Classic")

        assert summary.active is True
        assert service.get_active_event(COMMUNITY).id == summary.id
        assert "Spring Classic" in live_text(service, surface, LiveDocument.best_single_current)

    def test_close_without_active_event(self, service, admin):
        with pytest.raises(NoActiveEvent) as excinfo:
            service.close_event(admin)

        assert excinfo.value.message == "No active tournament to end."

    def test_close_freezes_posts_and_refreshes(self, service, surface, clock, admin):
        configure(service, admin)
        event = service.open_event(admin, "Classic")
        weigh_in(service, clock, "angler-1", 5.5)
        weigh_in(service, clock, "angler-2", 3.25)

        closed = service.close_event(admin)

        assert closed.id == event.id
        assert closed.active is False
        assert service.get_active_event(COMMUNITY) is None
        assert count(service, EventResult, EventResult.event_id == event.id) == 2

        archive_posts = [content for channel, content in surface.sent if channel == ARCHIVE_CHANNEL]
        assert len(archive_posts) == 3
        assert "FINAL RESULTS" in archive_posts[0].title
        assert "<@angler-1>" in archive_posts[1].text

        monthly = live_text(service, surface, LiveDocument.monthly_winners)
        assert "2026-05" in monthly
        assert "<@angler-1>" in monthly
        assert "No Active Tournament" in live_text(service, surface, LiveDocument.top_total_current)

    def test_force_closed_event_is_frozen(self, service, clock, admin):
        first = service.open_event(admin, "First")
        weigh_in(service, clock, "angler-1", 2.0)

        service.open_event(admin, "Second")

        assert count(service, Event, Event.active.is_(True)) == 1
        assert count(service, EventResult, EventResult.event_id == first.id) == 1

    def test_close_reported_when_freeze_fails(self, service, clock, admin):
        """A committed close stands even if freezing its results fails; the freeze can be retried."""
        event = service.open_event(admin, "Classic")
        weigh_in(service, clock, "angler-1", 2.0)

        with patch(
            "tournament_engine.services.tournament.snapshot_event",
            side_effect=Conflict("constraint violated"),
        ):
            closed = service.close_event(admin)

        assert closed.id == event.id
        assert service.get_active_event(COMMUNITY) is None
        assert count(service, EventResult, EventResult.event_id == event.id) == 0

        assert service.snapshot(COMMUNITY, event.id) == 1

    def test_open_reported_when_force_close_freeze_fails(self, service, admin):
        first = service.open_event(admin, "First")

        with patch(
            "tournament_engine.services.tournament.snapshot_event",
            side_effect=Conflict("constraint violated"),
        ):
            second = service.open_event(admin, "Second")

        assert service.get_active_event(COMMUNITY).id == second.id
        assert service.snapshot(COMMUNITY, first.id) == 0


class TestSubmissions:
    """Tests for uploads and weigh-ins through the service."""

    def test_non_image_attachment_ignored(self, service):
        attachments = [Attachment(url="https://cdn.example/a.mp4", content_type="video/mp4")]

        assert service.record_upload(COMMUNITY, CHANNEL, "angler-1", "msg", attachments) is None

    def test_receipt_and_live_board(self, service, surface, clock, admin):
        configure(service, admin)
        service.open_event(admin, "Classic")

        receipt = weigh_in(service, clock, "angler-1", "4.20", notes="dock")

        assert receipt.weight == pytest.approx(4.2)
        assert receipt.status == "approved"
        assert receipt.media_ref == "https://cdn.example/fish.jpg"
        rendered = receipt.render()
        assert rendered.title == "✅ Weigh-in Submitted"
        assert ("Weight", "**4.20 lbs**") in rendered.fields
        assert "<@angler-1>" in live_text(service, surface, LiveDocument.best_single_current)
        assert "4.20" in live_text(service, surface, LiveDocument.top_total_current)

    def test_wrong_channel(self, service, admin):
        configure(service, admin)
        service.open_event(admin, "Classic")

        with pytest.raises(WrongChannel) as excinfo:
            service.submit_catch(COMMUNITY, "999999999999999999", "angler-1", "3.0")

        assert f"<#{CHANNEL}>" in excinfo.value.message

    def test_missing_photo(self, service, admin):
        service.open_event(admin, "Classic")

        with pytest.raises(MissingEvidence):
            service.submit_catch(COMMUNITY, CHANNEL, "angler-1", "3.0")

    def test_chat_outage_does_not_block_weigh_in(self, service, surface, clock, admin):
        configure(service, admin)
        service.open_event(admin, "Classic")
        surface.unavailable = True

        receipt = weigh_in(service, clock, "angler-1", 6.0)

        assert receipt.catch_id is not None
        assert service.leaderboards(COMMUNITY).best_single[0].angler_id == "angler-1"

    def test_works_without_chat_surface(self, session_factory, clock, admin):
        headless = TournamentService(
            None, session_factory, config=EngineConfig(), tz=ZoneInfo("UTC"), clock=clock
        )
        headless.open_event(admin, "Classic")

        receipt = weigh_in(headless, clock, "angler-1", 1.5)

        assert receipt.status == "approved"
        assert headless.refresh_views(COMMUNITY) == {}


class TestModeration:
    """Tests for moderated deployments."""

    @pytest.fixture
    def engine_config(self):
        return EngineConfig(moderation_enabled=True)

    def test_pending_catch_hidden_until_approved(self, service, clock, admin):
        service.open_event(admin, "Classic")
        receipt = weigh_in(service, clock, "angler-1", 3.0)

        assert receipt.status == "pending"
        assert receipt.render().title == "⏳ Weigh-in Pending Review"
        assert service.leaderboards(COMMUNITY).is_empty

        assert service.set_catch_status(admin, receipt.catch_id, "approved") is True
        assert service.set_catch_status(admin, receipt.catch_id, "approved") is False
        assert service.leaderboards(COMMUNITY).best_single[0].best_single == pytest.approx(3.0)

    def test_decision_on_closed_event_refreezes_results(self, service, clock, admin):
        event = service.open_event(admin, "Classic")
        receipt = weigh_in(service, clock, "angler-1", 3.0)
        service.close_event(admin)
        assert count(service, EventResult, EventResult.event_id == event.id) == 0

        service.set_catch_status(admin, receipt.catch_id, "approved")

        assert count(service, EventResult, EventResult.event_id == event.id) == 1

    def test_members_cannot_moderate(self, service, clock, admin, member):
        service.open_event(admin, "Classic")
        receipt = weigh_in(service, clock, "angler-1", 3.0)

        with pytest.raises(PermissionDenied):
            service.set_catch_status(member, receipt.catch_id, "approved")


class TestModerationDisabled:
    """Moderation endpoints are refused when the feature is off."""

    def test_set_status_refused(self, service, clock, admin):
        service.open_event(admin, "Classic")
        receipt = weigh_in(service, clock, "angler-1", 3.0)

        with pytest.raises(PermissionDenied):
            service.set_catch_status(admin, receipt.catch_id, "rejected")


class TestReadModels:
    """Tests for leaderboards and period standings."""

    def test_leaderboards_require_active_event(self, service):
        with pytest.raises(NoActiveEvent):
            service.leaderboards(COMMUNITY)

    def test_leaderboards_for_closed_event(self, service, clock, admin):
        event = service.open_event(admin, "Classic")
        weigh_in(service, clock, "angler-1", 2.0)
        service.close_event(admin)

        boards = service.leaderboards(COMMUNITY, event.id)

        assert boards.top_total[0].total == pytest.approx(2.0)

    def test_monthly_and_yearly_standings(self, service, clock, admin):
        service.open_event(admin, "Classic")
        weigh_in(service, clock, "angler-1", 2.0)
        weigh_in(service, clock, "angler-1", 3.0)
        service.close_event(admin)

        monthly = service.monthly_standings(COMMUNITY, "2026-05")
        yearly = service.yearly_standings(COMMUNITY, 2026)

        assert monthly == yearly
        assert monthly[0].total == pytest.approx(5.0)
        assert service.monthly_standings(COMMUNITY, "2026-04") == []


class TestWipeCommunity:
    """Tests for TournamentService.wipe_community."""

    def test_wipe_removes_events_and_results(self, service, clock, admin):
        service.open_event(admin, "Classic")
        weigh_in(service, clock, "angler-1", 2.0)
        service.close_event(admin)

        summary = service.wipe_community(admin)

        assert summary["events"] == 1
        assert summary["catches"] == 1
        assert summary["event_results"] == 1
        assert count(service, Event, Event.community_id == COMMUNITY) == 0

    def test_wipe_leaves_other_communities(self, service, clock, admin):
        other = Actor(community_id="guild-2", user_id="admin-2", is_admin=True)
        service.open_event(other, "Elsewhere")

        service.wipe_community(admin)

        assert service.get_active_event("guild-2") is not None
