"""
Logging configuration for segskip.

structlog renders key-value events through the stdlib logging machinery, so
host applications keep control of handlers and levels.
"""

import logging
import sys

import structlog

from segskip.config import settings


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure structlog, JSON output by default."""
    level = (level or settings.log_level).upper()
    json = settings.log_json if json is None else json

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Get a lazily configured logger carrying the service name."""
    return structlog.get_logger(name, service="segskip")
