"""Fail-fast environment validation for the tournament engine.

Runs before settings are built so a misconfigured production container
refuses to start instead of writing tournament data somewhere unexpected.
"""

from __future__ import annotations

import os
from functools import lru_cache
from urllib.parse import urlparse

ALLOWED_ENVIRONMENTS = {"development", "staging", "production"}


def require_env(name: str) -> str:
    """Fetch an environment variable or raise RuntimeError if missing."""
    value = os.getenv(name)
    if value is None or not value.strip():
        raise RuntimeError(f"{name} is required and must be set before startup.")
    return value.strip()


def validate_environment_value(environment: str) -> None:
    """Ensure ENVIRONMENT is one of the allowed values."""
    if environment not in ALLOWED_ENVIRONMENTS:
        allowed = ", ".join(sorted(ALLOWED_ENVIRONMENTS))
        raise RuntimeError(f"ENVIRONMENT must be one of: {allowed}.")


def validate_server_database(value: str) -> None:
    """Production ledgers live in PostgreSQL, never in a local SQLite file."""
    parsed = urlparse(value)
    if parsed.scheme.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must not use SQLite in production.")
    host = parsed.hostname
    if not host:
        raise RuntimeError("DATABASE_URL must be a valid URL (missing hostname).")
    if host in {"localhost", "127.0.0.1"}:
        raise RuntimeError("DATABASE_URL must not point to localhost in production.")


def validate_database_credentials(value: str) -> None:
    """Ensure DATABASE_URL does not use default credentials in production."""
    parsed = urlparse(value)
    if parsed.username == "postgres" and parsed.password == "postgres":
        raise RuntimeError(
            "DATABASE_URL must not use default postgres credentials in production."
        )


@lru_cache(maxsize=1)
def validate_env() -> None:
    """Validate environment variables before the engine starts.

    Development and staging fall back to the SQLite defaults; production must
    name an explicit, non-local PostgreSQL database.
    """
    environment = os.getenv("ENVIRONMENT", "development").strip() or "development"
    validate_environment_value(environment)

    if environment == "production":
        database_url = require_env("DATABASE_URL")
        validate_server_database(database_url)
        validate_database_credentials(database_url)
