"""structlog configuration for habitext.

Two output modes:
- Human (default): colored console output to stderr
- JSON (--log-json): Structured JSON lines to stderr

Extension attribution: the dispatcher binds ``habit_id``, ``event_kind``
and ``extension`` in the structlog context while a hook runs, and the
``extension.*`` fault events pass ``extension`` explicitly. Both reach the
output through ``merge_contextvars``. Events carrying an ``extension`` key
are additionally held to ``[logging] extension_level``, so a noisy
third-party extension can be quietened without hiding habitext's own logs.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict

_METHOD_LEVELS = {**logging.getLevelNamesMapping(), "EXCEPTION": logging.ERROR}


class ExtensionLevelFilter:
    """Drop extension-attributed events logged below ``level``."""

    def __init__(self, level: int | str) -> None:
        self.level = _to_level(level)

    def __call__(self, logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        if "extension" not in event_dict:
            return event_dict
        if _METHOD_LEVELS.get(method_name.upper(), logging.NOTSET) < self.level:
            raise structlog.DropEvent
        return event_dict


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    extension_level: int | str = logging.DEBUG,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        verbose: Enable DEBUG-level output. When False, only WARNING+.
        log_json: Use JSON renderer instead of console renderer.
        extension_level: Lowest level for events attributed to an extension.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # DropEvent is only honoured on the structlog side, so the filter stays
    # out of the foreign (stdlib) pre-chain.
    structlog.configure(
        processors=[
            *shared_processors,
            ExtensionLevelFilter(extension_level),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("habitext").setLevel(level)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def _to_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    try:
        return logging.getLevelNamesMapping()[level.upper()]
    except KeyError:
        msg = f"Unknown log level {level!r}"
        raise ValueError(msg) from None
