# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for the pagetree CLI.

Log records go to stderr unless a stream is given; stdout is reserved for
extraction output. Leaf module: no pagetree imports.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

import structlog

LEVEL_ENV = "PAGETREE_LOG_LEVEL"

# Third-party loggers that drown out pipeline messages at DEBUG
_NOISY_LOGGERS = ("asyncio", "playwright")


def resolve_level(verbose: bool = False) -> str:
    """CLI ``-v`` wins, then PAGETREE_LOG_LEVEL, then INFO."""
    if verbose:
        return "DEBUG"
    return os.environ.get(LEVEL_ENV, "").strip().upper() or "INFO"


def _level_number(level: str) -> int:
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def _shared_processors() -> list:
    # Run for structlog loggers and for foreign stdlib records alike
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_output: bool, stream: TextIO):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def _quiet_noisy_loggers(root_level: int) -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))


def configure(*, json_output: bool = False, level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route stdlib logging through structlog renderers.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level name (unknown names fall back to INFO).
        stream: Destination for log records; stderr when omitted.

    Calling again replaces the previous handler.
    """
    stream = stream or sys.stderr
    processors = _shared_processors()

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output, stream),
            ],
            foreign_pre_chain=processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_level_number(level))
    _quiet_noisy_loggers(root.level)
