"""Shared pytest fixtures and configuration."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Ensure the engine package is importable
REPO_ROOT = Path(__file__).resolve().parents[2]
ENGINE_ROOT = REPO_ROOT / "engine"
if str(ENGINE_ROOT) not in sys.path:
    sys.path.insert(0, str(ENGINE_ROOT))

# Set required environment variables before any imports
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from sqlalchemy.pool import StaticPool

from tournament_engine.config import EngineConfig
from tournament_engine.db import build_engine, build_session_factory, init_db
from tournament_engine.errors import ExternalUnavailable, HandleNotFound
from tournament_engine.services.tournament import Actor, Attachment, TournamentService

COMMUNITY = "guild-1"
CHANNEL = "100000000000000001"
LIVE_CHANNEL = "100000000000000002"
ARCHIVE_CHANNEL = "100000000000000003"


class FakeClock:
    """Controllable clock; starts mid-May 2026 UTC."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 5, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeSurface:
    """In-memory chat surface that records every send and edit."""

    def __init__(self) -> None:
        self.messages: dict[tuple[str, str], object] = {}
        self.sent: list[tuple[str, object]] = []
        self.edits: list[tuple[str, str, object]] = []
        self.unavailable = False
        self.missing_channels: set[str] = set()
        self._next_handle = 1000

    def _check(self, channel_id: str) -> None:
        if self.unavailable:
            raise ExternalUnavailable()
        if channel_id in self.missing_channels:
            raise HandleNotFound()

    def fetch_message(self, channel_id, handle):
        self._check(channel_id)
        if (channel_id, handle) not in self.messages:
            raise HandleNotFound()

    def send_message(self, channel_id, content):
        self._check(channel_id)
        self._next_handle += 1
        handle = str(self._next_handle)
        self.messages[(channel_id, handle)] = content
        self.sent.append((channel_id, content))
        return handle

    def edit_message(self, channel_id, handle, content):
        self._check(channel_id)
        if (channel_id, handle) not in self.messages:
            raise HandleNotFound()
        self.messages[(channel_id, handle)] = content
        self.edits.append((channel_id, handle, content))

    def delete(self, channel_id, handle):
        self.messages.pop((channel_id, handle), None)

    def content(self, channel_id, handle):
        return self.messages[(channel_id, handle)]


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database per test."""
    engine = build_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def session(session_factory):
    """A single session for persistence-level tests; rolled back afterwards."""
    db_session = session_factory()
    yield db_session
    db_session.rollback()
    db_session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def engine_config():
    return EngineConfig()


@pytest.fixture
def service(surface, session_factory, engine_config, clock):
    return TournamentService(
        surface,
        session_factory,
        config=engine_config,
        tz=ZoneInfo("UTC"),
        clock=clock,
    )


@pytest.fixture
def admin():
    return Actor(community_id=COMMUNITY, user_id="admin-1", is_admin=True)


@pytest.fixture
def member():
    return Actor(community_id=COMMUNITY, user_id="angler-1", is_admin=False)


def photo(url: str = "https://cdn.example/fish.jpg") -> list[Attachment]:
    return [Attachment(url=url, content_type="image/jpeg")]
