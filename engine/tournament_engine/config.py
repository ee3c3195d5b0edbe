"""
Typed settings for the tournament results engine.

Uses Pydantic Settings to load configuration from environment variables
with validation and type safety. Settings are loaded from the root .env
file when present so local runs and containers share one source.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .validate_env import ALLOWED_ENVIRONMENTS, validate_env


class EngineConfig(BaseModel):
    # Minutes a photo upload stays eligible as weigh-in evidence
    upload_window_minutes: int = Field(default=180, gt=0)
    # Rows shown on the live and final leaderboards
    leaderboard_limit: int = Field(default=25, gt=0)
    # Catches counted toward an angler's total bag
    bag_size: int = Field(default=5, gt=0)
    # Moderated deployments hold new catches as pending until an admin decides
    moderation_enabled: bool = False
    # A photo backs at most one weigh-in when enabled
    consume_uploads: bool = True


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    In containers, environment variables are passed directly. For local
    development, the root .env file is read if it exists.
    """

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[2] / ".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="allow",
    )

    database_url: str = Field("sqlite:///data/tournament.sqlite", alias="DATABASE_URL")
    sql_echo: bool = Field(False, alias="SQL_ECHO")
    environment: str = Field("development", alias="ENVIRONMENT")
    log_level: str | None = Field(None, alias="LOG_LEVEL")
    timezone: str = Field("UTC", alias="TOURNAMENT_TIMEZONE")
    engine_config: EngineConfig = Field(default_factory=EngineConfig)

    upload_window_minutes_override: int | None = Field(None, alias="UPLOAD_WINDOW_MINUTES")
    leaderboard_limit_override: int | None = Field(None, alias="LEADERBOARD_LIMIT")
    moderation_enabled_override: bool | None = Field(None, alias="MODERATION_ENABLED")
    consume_uploads_override: bool | None = Field(None, alias="CONSUME_UPLOADS")

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_async_to_sync(cls, v: str) -> str:
        """The engine runs a synchronous SQLAlchemy engine; swap asyncpg for psycopg."""
        if isinstance(v, str) and "asyncpg" in v:
            return v.replace("asyncpg", "psycopg")
        return v

    @field_validator("environment")
    @classmethod
    def _check_environment(cls, v: str) -> str:
        if v not in ALLOWED_ENVIRONMENTS:
            allowed = ", ".join(sorted(ALLOWED_ENVIRONMENTS))
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @model_validator(mode="after")
    def _apply_engine_overrides(self) -> Settings:
        """
        Allow flat env vars (UPLOAD_WINDOW_MINUTES, LEADERBOARD_LIMIT, ...)
        to override the nested engine config without double-underscore syntax.
        """
        overrides = {
            "upload_window_minutes": self.upload_window_minutes_override,
            "leaderboard_limit": self.leaderboard_limit_override,
            "moderation_enabled": self.moderation_enabled_override,
            "consume_uploads": self.consume_uploads_override,
        }
        patch = {key: value for key, value in overrides.items() if value is not None}
        if patch:
            # Re-validate so overrides obey the same bounds as the defaults
            self.engine_config = EngineConfig.model_validate(
                {**self.engine_config.model_dump(), **patch}
            )
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Settings are cached to avoid re-parsing environment variables
    on every access.
    """
    validate_env()
    return Settings()


# Global settings instance - import this in other modules
settings = get_settings()
