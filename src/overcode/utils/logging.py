"""Structured logging for overcode.

structlog is layered over the standard library. Development runs render to
the console; staging and production emit one JSON object per line. Logs
always go to stderr so that anything a caller prints on stdout stays clean.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from overcode.config import AppSettings, get_settings

HASH_PREFIX_LENGTH = 8


def setup_logging(settings: AppSettings | None = None) -> None:
    """Configure structlog and the root logger.

    Args:
        settings: Application settings. Defaults to the global settings.
    """
    app = settings or get_settings().app

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if app.env == "development":
        renderers: list[Processor] = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]
    else:
        renderers = [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=[*shared_processors, *renderers],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, app.log_level),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Scan finished", files=10)
    """
    return structlog.get_logger(name)


def short_hash(content_hash: str) -> str:
    """Abbreviated content hash for log fields."""
    return content_hash[:HASH_PREFIX_LENGTH]


class LogContext:
    """Binds context variables to every log line emitted inside a block.

    Values already bound under the same keys are restored on exit, so
    contexts nest.

    Example:
        >>> with LogContext(root="/src/project"):
        ...     logger.info("Indexing")  # includes root
    """

    def __init__(self, **context: Any) -> None:
        self.context = context
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = dict(structlog.contextvars.bind_contextvars(**self.context))
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}
