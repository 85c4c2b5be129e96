"""
Structured logging for the tracker.
Uses structlog for context-rich, machine-parseable logs.
"""
from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog
from shared.config import Environment, get_settings

# Event keys whose values must never reach a log sink
SECRET_KEYS = frozenset({"token", "access_key", "client_secret", "authorization"})


def redact_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def setup_logging(process: str, debug: bool | None = None) -> None:
    """
    Configure stdlib logging and structlog for a tracker process.

    Args:
        process: Bound as ``service`` on every entry (``tracker`` or ``cli``).
        debug: Force DEBUG level; defaults to MPT_DEBUG.
    """
    settings = get_settings()
    if debug is None:
        debug = settings.debug
    level = logging.DEBUG if debug else getattr(logging, settings.log_level.upper(), logging.INFO)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]

    renderer: structlog.types.Processor
    if settings.environment == Environment.DEV:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Request-level noise is already covered by provider_request_complete
    for noisy in ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=process, region=settings.blizzard_region)


def bind_pass_id() -> str:
    """Tag every log line of the current sync pass with a short id."""
    pass_id = uuid.uuid4().hex[:8]
    structlog.contextvars.bind_contextvars(pass_id=pass_id)
    return pass_id


def clear_pass_id() -> None:
    structlog.contextvars.unbind_contextvars("pass_id")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
