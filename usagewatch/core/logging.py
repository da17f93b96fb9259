"""structlog setup for the API and the polling worker."""

import logging
import sys

import structlog
from structlog.types import Processor

from usagewatch.core.config import Settings, get_settings

# Libraries that log each HTTP request at INFO
CHATTY_LOGGERS = ("httpx", "httpcore")


def _renderer(debug: bool) -> list[Processor]:
    if debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: Settings | None = None) -> None:
    """Route structlog events to stdout, as JSON unless ``debug`` is set.

    Cycle ids bound with ``cycle_context`` are merged into every event.
    """
    settings = settings or get_settings()
    level = logging.getLevelNamesMapping()[settings.log_level]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            *_renderer(settings.debug),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=level,
    )
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
