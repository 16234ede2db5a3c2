"""Logging configuration using loguru.

Two consoles share one setup.  The registry service logs with timestamps
and call sites (``SERVICE_FORMAT``).  CLI commands log bare level-tagged
lines (``CLI_FORMAT``) so warnings sit cleanly next to command output.

Stdlib logging (uvicorn, httpx, botocore) is intercepted and re-emitted
through loguru either way.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

SERVICE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
CLI_FORMAT = "<level>{level}</level>: {message}"

# Third-party loggers kept at WARNING unless the requested level is stricter.
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "botocore", "boto3", "urllib3")


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, fmt: str = SERVICE_FORMAT) -> None:
    """Make loguru the only sink, writing to stderr at ``level``.

    May be called again (each CLI command does) and replaces the previous
    configuration.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    floor = max(logging.WARNING, logging.getLevelNamesMapping().get(level, logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(floor)

    logger.debug("Logging initialised (level={})", level)
