"""Structured logging for the CLI and host applications.

Engine modules log through ``logging.getLogger(__name__)``; those records are
rendered by structlog's ``ProcessorFormatter`` so stdlib and structlog output
share one format (console in development, JSON when ``JSON_LOGS=true``).
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

_HANDLER_NAME = "wbscalc"


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(
    level: str | None = None,
    *,
    json_logs: bool | None = None,
    log_file: str | Path | None = None,
) -> None:
    """Route structlog and stdlib logging to stderr (and optionally a file).

    Args:
        level: Overrides ``LOG_LEVEL`` (default INFO)
        json_logs: Overrides ``JSON_LOGS``
        log_file: Overrides ``LOG_FILE``; the parent directory must exist

    Calling it again replaces the handlers installed by a previous call.
    """
    if json_logs is None:
        json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"
    if log_file is None:
        log_file = os.getenv("LOG_FILE") or None
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    shared = _shared_processors()
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    # stderr keeps CLI tables on stdout clean
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None and Path(log_file).parent.exists():
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level_name)
