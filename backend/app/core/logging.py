"""Logging configuration.

structlog renders every record; stdlib loggers (uvicorn, SQLAlchemy, httpx)
are routed through the same root handler so output stays uniform.
"""

import logging
import sys

import structlog

from app.core.config import settings

# Third-party loggers that are too chatty at INFO
_NOISY_LOGGERS = ("httpcore", "httpx", "aiosqlite")


def configure_logging() -> None:
    """Configure stdlib logging and structlog from settings.

    Development uses the colored console renderer; set LOG_JSON=true
    (or run in production) for one JSON object per line.
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    use_json = settings.log_json or settings.environment == "production"
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def sanitize_for_log(value: str | None) -> str:
    """Strip CR/LF from user-supplied values before logging.

    Security: prevents log forging via embedded newlines.
    """
    return (value or "").replace("\r", "").replace("\n", "")
