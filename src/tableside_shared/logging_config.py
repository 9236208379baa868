"""
Structured logging configuration.
"""

import logging
import sys
from typing import Any

from pythonjsonlogger import jsonlogger


def configure_logging(app_name: str, log_level: str = "INFO") -> logging.Logger:
    """
    Configure structured logging for the application.

    Both the application logger and the ``tableside_shared`` package logger get
    the JSON handler so service modules log in the same format as the app.

    Args:
        app_name: Name of the application
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger = logging.getLogger(app_name)
    logger.setLevel(level)

    shared_logger = logging.getLogger("tableside_shared")
    shared_logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger", "asctime": "timestamp"},
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if not shared_logger.handlers:
        shared_logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds contextual information to all log messages.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def table_logger(name: str, table_id: int, **context: Any) -> LoggerAdapter:
    """Logger bound to a table id (and any extra ids) for structured output."""
    return LoggerAdapter(get_logger(name), {"table_id": table_id, **context})
