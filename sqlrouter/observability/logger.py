"""
Structured logging for sql-event-router

Every module logs through logging.getLogger(__name__), which places it
under the "sqlrouter" logger. setup_logger() installs a single stderr
handler there, emitting JSON lines by default so the structured `extra`
fields (table, error, record, ...) stay machine-readable.
"""
import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import IO, Iterator

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "sqlrouter"

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(message)s"
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class RouterJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter filling timestamp, level and logger name."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def parse_level(level: str | None) -> int:
    """Resolve a level name, falling back to LOG_LEVEL and then INFO."""
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def setup_logger(
    level: str | None = None,
    format_type: str = "json",
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Configure the "sqlrouter" logger

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" or "text"
        stream: Output stream, stderr by default

    Returns:
        The configured "sqlrouter" logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(parse_level(level))
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    if format_type == "json":
        handler.setFormatter(RouterJsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    logger.addHandler(handler)

    logger.propagate = False
    return logger


@contextmanager
def log_operation(operation: str, logger: logging.Logger, **fields) -> Iterator[None]:
    """
    Log completion or failure of an operation with its duration

    Usage:
        with log_operation("Loading events", logger, input=path):
            ...
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(
            f"Failed: {operation}",
            extra={
                "operation": operation,
                "duration_seconds": round(time.perf_counter() - start, 3),
                "error_type": type(e).__name__,
                **fields,
            },
            exc_info=True,
        )
        raise
    logger.info(
        f"Completed: {operation}",
        extra={
            "operation": operation,
            "duration_seconds": round(time.perf_counter() - start, 3),
            **fields,
        },
    )
