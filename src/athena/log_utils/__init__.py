"""Structured logging for the session SDK."""

from .formatters import (
    LogError,
    LogRecord,
    ColoredConsoleFormatter,
    JSONFormatter,
    ConsoleJSONFormatter,
    mask_sensitive_data,
    mask_sensitive_string,
    mask_token,
)

from .handlers import (
    DEFAULT_LOGGER_NAME,
    LogEvent,
    init_logger,
    setup_logging,
    debug,
    info,
    warning,
    error,
    critical,
)

__all__ = [
    "LogError",
    "LogRecord",
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "ConsoleJSONFormatter",
    "mask_sensitive_data",
    "mask_sensitive_string",
    "mask_token",
    "DEFAULT_LOGGER_NAME",
    "LogEvent",
    "init_logger",
    "setup_logging",
    "debug",
    "info",
    "warning",
    "error",
    "critical",
]
