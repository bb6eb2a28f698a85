"""
Logging Configuration

structlog setup for the VoiceVerse pipeline. JSON output for production,
human-readable console output for development.
"""

import logging
import sys
from typing import Optional

import structlog


# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "asyncio",
    "aiosqlite",
    "sqlalchemy.engine",
)


def configure_logging(
    level: str = "info",
    fmt: str = "console",
    service_name: Optional[str] = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (debug, info, warning, error, critical)
        fmt: ``json`` or ``console``
        service_name: Bound into every event when given
    """
    log_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if service_name:
        structlog.contextvars.bind_contextvars(service=service_name)
