"""
structlog setup for scopechunk.

The library never installs handlers on its own; log records go nowhere until
an application calls :func:`configure_logging`. The CLI does so once at
startup and can move all output into a file with ``--log``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger, ProcessorFormatter
from structlog.typing import Processor

_SHARED_PROCESSORS: tuple[Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
)


def _renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=False)


def _handler_for(handler: logging.Handler, level: int, json_output: bool) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        ProcessorFormatter(processor=_renderer(json_output), foreign_pre_chain=_SHARED_PROCESSORS)
    )
    return handler


def _configure_structlog(level: int) -> None:
    structlog.configure(
        processors=_SHARED_PROCESSORS + (ProcessorFormatter.wrap_for_formatter,),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def configure_logging(
    level: int = logging.INFO,
    enable_console: bool = True,
    json_output: bool = False,
) -> None:
    """
    Route structlog events through the standard logging module.

    Parameters
    ----------
    level:
        Minimum severity kept by structlog and the root logger.
    enable_console:
        Emit records on stderr. When False a ``NullHandler`` is installed so
        embedding applications see no output.
    json_output:
        Render one JSON object per record instead of the key=value console
        format.
    """
    _configure_structlog(level)
    logging.captureWarnings(True)
    if enable_console:
        handler = _handler_for(logging.StreamHandler(), level, json_output)
    else:
        handler = logging.NullHandler()
    logging.basicConfig(level=level, handlers=[handler], force=True)


def redirect_logging_to_file(path: Path, level: int = logging.DEBUG, json_output: bool = False) -> None:
    """Replace every root handler with a file handler writing to ``path``."""
    _configure_structlog(level)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = _handler_for(logging.FileHandler(path, mode="w", encoding="utf-8"), level, json_output)
    logging.basicConfig(level=level, handlers=[handler], force=True)


def get_logger(name: Optional[str] = None) -> BoundLogger:
    return structlog.get_logger(name)
