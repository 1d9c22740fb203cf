# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

"""Logging setup for the supervisor process.

Modules log through plain ``logging.getLogger(__name__)``; every record
is rendered by structlog. The console gets the dev renderer, and an
optional ``hotspawn.log`` in the configured log directory gets one JSON
object per line. The proxy binds a ``request_id`` per request, which
shows up on every record logged while handling it.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import orjson
import structlog

LOG_FILENAME = "hotspawn.log"
_MAX_LOG_BYTES = 5 * 1024 * 1024
_LOG_BACKUPS = 3

# Third-party loggers capped at WARNING.
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "watchdog")

_PRE_CHAIN = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.format_exc_info,
)


def set_request_id(request_id: str) -> None:
    structlog.contextvars.bind_contextvars(request_id=request_id)


def get_request_id() -> str:
    """Request ID bound for the current context, ``-`` outside a request."""
    return structlog.contextvars.get_contextvars().get("request_id", "-")


def _dumps(obj: object, **_kw: object) -> str:
    return orjson.dumps(obj, default=str).decode()


def _formatter(renderer: structlog.typing.Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=list(_PRE_CHAIN),
    )


def _file_handler(log_dir: Path, json_file: bool) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=_LOG_BACKUPS,
        encoding="utf-8",
    )
    if json_file:
        renderer = structlog.processors.JSONRenderer(serializer=_dumps)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    handler.setFormatter(_formatter(renderer))
    return handler


def setup_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    json_file: bool = True,
) -> None:
    """Route stdlib and structlog records to the console and *log_dir*.

    Args:
        level: Root level name; unknown names fall back to INFO.
        log_dir: Where ``hotspawn.log`` is written. None keeps console only.
        json_file: JSON lines in the file instead of plain text.
    """
    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    handlers[0].setFormatter(_formatter(structlog.dev.ConsoleRenderer()))
    if log_dir is not None:
        handlers.append(_file_handler(log_dir, json_file))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
