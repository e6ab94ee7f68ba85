"""
Structured logging for profile-sync

Every module logs through get_logger(__name__). JSON output (python-json-logger)
keeps skip and failure records greppable by key, reason and component; text
output is for local runs.
"""
import logging
import os
import sys
import time

from pythonjsonlogger import jsonlogger

DEFAULT_LOGGER_NAME = "profile-sync"
PACKAGE_PREFIX = "profile_sync"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(component)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s - %(message)s"


def component_of(logger_name: str) -> str:
    """
    Subsystem a logger belongs to: "profile_sync.streaming.propagator" -> "streaming"
    """
    parts = logger_name.split(".")
    if parts[0] == PACKAGE_PREFIX and len(parts) > 1:
        return parts[1]
    return parts[0]


class SyncJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, level, logger, component and function fields

    Values passed through ``extra`` (key, reason, counts) land as top-level fields.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = (log_record.get("level") or record.levelname).upper()
        log_record["logger"] = record.name
        log_record["component"] = component_of(record.name)
        log_record["function"] = record.funcName


def _build_formatter(format_type: str) -> logging.Formatter:
    if format_type == "json":
        return SyncJsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Configure a logger with a single stdout handler

    Args:
        name: Logger name
        level: Log level (defaults to env var LOG_LEVEL or INFO)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT or json)

    Returns:
        Configured logger instance
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = LOG_LEVELS.get(level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(_build_formatter(format_type or os.getenv("LOG_FORMAT", "json")))

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Return a logger, configuring it from the environment on first use."""
    logger = logging.getLogger(name)
    return logger if logger.handlers else setup_logger(name)


def reconfigure_loggers(level: str | None = None, format_type: str | None = None) -> None:
    """
    Re-apply level and format to every logger already configured by this module

    Module loggers are created at import time, before CLI options are parsed.
    """
    if level:
        os.environ["LOG_LEVEL"] = level
    if format_type:
        os.environ["LOG_FORMAT"] = format_type

    names = [DEFAULT_LOGGER_NAME] + [
        name for name in logging.root.manager.loggerDict
        if name.startswith(PACKAGE_PREFIX)
    ]
    for name in names:
        if logging.getLogger(name).handlers:
            setup_logger(name, level=level, format_type=format_type)


class log_operation:
    """
    Context manager logging the start, end and duration of an operation

    Usage:
        with log_operation("Bulk reconcile", logger=logger, batch_size=500) as op:
            ...
        op.duration  # seconds
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.duration = 0.0
        self._started = 0.0

    def _fields(self, **fields) -> dict:
        return {"operation": self.operation_name, **fields, **self.extra_fields}

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info(f"Starting: {self.operation_name}", extra=self._fields())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self._started
        elapsed = round(self.duration, 3)

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name}",
                extra=self._fields(duration_seconds=elapsed, status="success"),
            )
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra=self._fields(
                    duration_seconds=elapsed,
                    status="error",
                    error_type=exc_type.__name__,
                    error_message=str(exc_val),
                ),
                exc_info=True,
            )
        return False
