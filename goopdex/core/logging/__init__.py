"""Structured logging: context binding, JSON/console formatting, queue-based output."""

from goopdex.core.logging.logger import (
    JSONFormatter,
    LogContext,
    bind_log_context,
    clear_log_context,
    get_log_context,
    get_logger,
    logging_status,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "JSONFormatter",
    "LogContext",
    "bind_log_context",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "logging_status",
    "setup_logging",
    "shutdown_logging",
]
