"""
Logging setup for bugboard.

Modules log through structlog with snake_case events::

    logger = structlog.get_logger()
    logger.info("item_moved", item_id="42", to_column="done")

The CLI calls :func:`configure_logging` once per invocation with the
``[logging]`` config section; the ``--log-level`` / ``--log-json`` flags
override it. Records always go to stderr so stdout stays clean for
``--json`` command output.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from bugboard.core.config import LoggingConfig

HANDLER_NAME = "bugboard"
DEFAULT_LEVEL = "WARNING"

# Request-per-line chatter from the HTTP stack
_QUIET_LOGGERS = ("httpx", "httpcore")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.WARNING


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    settings: LoggingConfig | None = None,
    *,
    level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """
    Route structlog and stdlib records through one stderr handler.

    Args:
        settings: The ``[logging]`` config section (level and format).
        level: Overrides ``settings.level`` when given.
        json_output: Overrides ``settings.format == "json"`` when given.

    Reconfiguring replaces the previous bugboard handler, so the handler
    always writes to the current ``sys.stderr``.
    """
    level_name = level or (settings.level if settings is not None else DEFAULT_LEVEL)
    if json_output is None:
        json_output = settings is not None and settings.format == "json"
    log_level = _resolve_level(level_name)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        # ConsoleRenderer prints tracebacks itself; JSON needs them as a string field
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
