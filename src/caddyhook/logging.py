"""structlog setup for the webhook bridge.

Every line is one event dict. The router binds ``delivery_id``
and ``github_event`` through contextvars, so log lines emitted while a
delivery is being handled carry both keys without passing them around.
"""

from __future__ import annotations

import logging
import sys

import structlog

from caddyhook.config import Settings, get_settings

# Per-request chatter from the client and server libraries
QUIET_LOGGERS = ("httpx", "httpcore", "aiohttp.access")


def _renderer(settings: Settings) -> structlog.types.Processor:
    if settings.is_development:
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger from *settings*.

    Falls back to ``get_settings()`` when called without arguments. An
    unknown ``log_level`` means INFO.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            _renderer(settings),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # aiohttp and httpx log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
