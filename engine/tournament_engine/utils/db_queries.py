"""Shared database query utilities."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def upsert_insert(session: Session, model: Any):
    """Return an INSERT construct that supports ``on_conflict_do_update``.

    PostgreSQL is the production store; SQLite backs local runs and tests.
    Both dialects expose the same ON CONFLICT API.

    Raises:
        RuntimeError: If the bound engine uses any other dialect
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise RuntimeError(f"Upserts are not supported on the {dialect} dialect.")
