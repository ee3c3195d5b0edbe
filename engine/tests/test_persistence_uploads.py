"""Tests for persistence/uploads.py module."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tournament_engine.errors import InvalidInput
from tournament_engine.persistence.uploads import (
    consume_upload,
    record_upload,
    resolve_recent_upload,
)

NOW = datetime(2026, 5, 15, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(minutes=180)


def upload(session, *, angler="a1", channel="c1", community="g1", media="m.jpg", at=NOW):
    return record_upload(
        session,
        community_id=community,
        channel_id=channel,
        angler_id=angler,
        message_ref=f"msg-{media}",
        media_ref=media,
        created_at=at,
    )


def resolve(session, *, angler="a1", channel="c1", community="g1", now=NOW, unconsumed_only=False):
    return resolve_recent_upload(
        session,
        community_id=community,
        channel_id=channel,
        angler_id=angler,
        window=WINDOW,
        now=now,
        unconsumed_only=unconsumed_only,
    )


class TestRecordUpload:
    """Tests for record_upload function."""

    def test_records_upload(self, session):
        row = upload(session)

        assert row.id is not None
        assert row.consumed_at is None

    def test_requires_media(self, session):
        with pytest.raises(InvalidInput):
            upload(session, media="")


class TestResolveRecentUpload:
    """Tests for resolve_recent_upload function."""

    def test_returns_most_recent(self, session):
        upload(session, media="old.jpg", at=NOW - timedelta(minutes=30))
        upload(session, media="new.jpg", at=NOW - timedelta(minutes=5))

        assert resolve(session).media_ref == "new.jpg"

    def test_same_timestamp_prefers_last_inserted(self, session):
        upload(session, media="first.jpg", at=NOW)
        upload(session, media="second.jpg", at=NOW)

        assert resolve(session).media_ref == "second.jpg"

    def test_outside_window_not_found(self, session):
        upload(session, at=NOW - timedelta(minutes=181))

        assert resolve(session) is None

    def test_scoped_to_channel_angler_and_community(self, session):
        upload(session, channel="c2")
        upload(session, angler="a2")
        upload(session, community="g2")

        assert resolve(session) is None

    def test_unconsumed_only_skips_claimed_uploads(self, session):
        older = upload(session, media="older.jpg", at=NOW - timedelta(minutes=10))
        newer = upload(session, media="newer.jpg", at=NOW - timedelta(minutes=1))
        assert consume_upload(session, newer.id, now=NOW) is True

        assert resolve(session, unconsumed_only=True).id == older.id
        assert resolve(session).id == newer.id


class TestConsumeUpload:
    """Tests for consume_upload function."""

    def test_second_consume_loses(self, session):
        row = upload(session)

        assert consume_upload(session, row.id, now=NOW) is True
        assert consume_upload(session, row.id, now=NOW) is False
