"""Shared utilities."""

from .logger import (
    LoggerAdapter,
    StructuredFormatter,
    get_context_logger,
    get_logger,
    setup_logging,
)

__all__ = [
    "LoggerAdapter",
    "StructuredFormatter",
    "get_context_logger",
    "get_logger",
    "setup_logging",
]
