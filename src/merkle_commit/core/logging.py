"""
Merkle Commitment Service - Logging Configuration
"""

import logging
import sys

import structlog

from merkle_commit.core.config import settings

# Root hex strings are long; logs keep a prefix for correlation
HEX_PREVIEW_LENGTH = 18


def shorten_hex(value: str) -> str:
    """Shorten a 0x-prefixed hex string for log output."""
    if len(value) <= HEX_PREVIEW_LENGTH:
        return value
    return value[:HEX_PREVIEW_LENGTH] + "..."


def setup_logging(level: str | None = None) -> None:
    """
    Configure structured logging.

    JSON lines in production, coloured console output elsewhere.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    use_json = settings.ENV == "production"

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_json:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )
