"""
structlog setup for the tournament engine.

Every record is a single JSON line on stdout carrying the service name and
deployment environment, so engine logs can be filtered next to the chat
gateway's.
"""

from __future__ import annotations

import logging

import structlog

from .config import settings

SERVICE_NAME = "tournament-engine"


def resolve_log_level(level: str | None, environment: str) -> int:
    """Explicit LOG_LEVEL wins; otherwise production logs INFO and everything else DEBUG."""
    if level:
        name = level.strip().upper()
    elif environment.lower() == "production":
        name = "INFO"
    else:
        name = "DEBUG"
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_logging(level: int | None = None) -> int:
    """Install the JSON processor chain. Returns the level in effect."""
    resolved = level if level is not None else resolve_log_level(settings.log_level, settings.environment)
    logging.basicConfig(level=resolved)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.EventRenamer("message"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolved),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return resolved


configure_logging()

logger = structlog.get_logger(SERVICE_NAME).bind(
    service=SERVICE_NAME,
    logger=SERVICE_NAME,
    environment=settings.environment,
)
