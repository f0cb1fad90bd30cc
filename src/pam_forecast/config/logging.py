"""Structured logging for the forecast engine and CLI."""

import logging
import sys
from typing import Literal, TextIO

import structlog

from pam_forecast.config.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _renderer(log_format: str, stream: TextIO) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(
        colors=stream.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    level: LogLevel | None = None,
    format: LogFormat | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog events through the root logger onto ``stream``.

    Args:
        level: Minimum level. Defaults to ``LOG_LEVEL``.
        format: ``json`` for one object per line, ``console`` for humans.
            Defaults to ``LOG_FORMAT``.
        stream: Destination, stderr unless given. stdout carries the
            rendered forecast and is never used for logs.

    Calling it again replaces the previous handler.
    """
    settings = get_settings()
    out = stream if stream is not None else sys.stderr

    logging.basicConfig(
        format="%(message)s",
        stream=out,
        level=getattr(logging, level or settings.log_level),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(format or settings.log_format, out),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
