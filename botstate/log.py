"""Process-wide logging for botstate.

Everything ends up in a single loguru sink.  The storage drivers log through
stdlib ``logging``; their records are bridged into loguru and tagged with the
backend they belong to (``mongodb`` or ``redis``) so a slow command can be told
apart from our own messages at a glance.

Driver verbosity follows the configured level.  At ``DEBUG`` (or ``TRACE``)
pymongo's command log and redis-py's connection messages are shown; at any
higher level only driver warnings and errors get through, since pymongo emits
a record for every command and server heartbeat.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from loguru import logger

from botstate.errors import ConfigurationError

# stdlib logger prefix -> backend tag
BACKEND_LOGGERS = {"pymongo": "mongodb", "redis": "redis"}

# Access logs are noise for a storage service.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[backend]: <7}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class _StdlibBridge(logging.Handler):
    """Forward stdlib records to loguru, tagging driver records with their backend."""

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

        backend = BACKEND_LOGGERS.get(record.name.partition(".")[0], "-")
        logger.bind(backend=backend).opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def driver_level(level: str) -> int:
    """stdlib level for the pymongo / redis loggers under loguru *level*.

    Raises:
        ConfigurationError: *level* is not a level loguru knows.
    """
    try:
        no = logger.level(level.upper()).no
    except ValueError as exc:
        raise ConfigurationError(f"Unknown log level: {level!r}") from exc
    if no <= logging.DEBUG:
        return no
    return max(no, logging.WARNING)


def setup_logging(level: str = "INFO", *, sink: Any = sys.stderr) -> None:
    """Install the loguru sink and route stdlib logging through it.

    Call once at process startup.  *sink* is anything ``logger.add`` accepts.
    """
    level = level.upper()
    drivers = driver_level(level)

    logger.remove()
    logger.configure(extra={"backend": "-"})
    logger.add(sink, level=level, format=_FORMAT)

    logging.basicConfig(handlers=[_StdlibBridge()], level=0, force=True)
    for name in BACKEND_LOGGERS:
        logging.getLogger(name).setLevel(drivers)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (level={}, drivers={})", level, logging.getLevelName(drivers))
