"""Logging utilities.

Every module logs through ``logging.getLogger(__name__)``; since all of them
live under the ``lidcprep`` namespace, configuring that one logger here is
enough for the whole package.
"""

import logging
import sys
from collections.abc import MutableMapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from ..config.base import LoggingConfig

ROOT_LOGGER_NAME = "lidcprep"


class StructuredFormatter(logging.Formatter):
    """Formatter that appends ``extra_data`` context as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured data.

        Args:
            record: Log record to format

        Returns:
            Formatted log string
        """
        record.series_key = getattr(record, "series_key", "-")

        message = super().format(record)

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            extra_str = " ".join(f"{k}={v}" for k, v in extra_data.items())
            message = f"{message} | {extra_str}"

        return message


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure console and optional file logging for the package.

    Args:
        config: Logging configuration. If None, uses default configuration

    Returns:
        Configured package logger
    """
    if config is None:
        config = LoggingConfig()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = StructuredFormatter(
        fmt="%(asctime)s | %(levelname)-8s | %(series_key)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(config.console_log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler (rotating)
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(config.file_log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the package namespace.

    Args:
        name: Logger name, with or without the package prefix

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter to add contextual information to logs."""

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Add context to log messages.

        Args:
            msg: Log message
            kwargs: Log keyword arguments

        Returns:
            Processed message and kwargs
        """
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def get_context_logger(name: str, **context: object) -> LoggerAdapter:
    """Get a logger with contextual information.

    Args:
        name: Logger name
        **context: Context attached to every record (e.g. ``series_key``)

    Returns:
        Logger adapter with context

    Example:
        >>> logger = get_context_logger(__name__, series_key="LIDC-IDRI-0001/3000566")
        >>> logger.info("Assembling volume")
    """
    return LoggerAdapter(get_logger(name), context)
