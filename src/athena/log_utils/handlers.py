"""Logging entry points and logger configuration."""

import enum
import logging
import traceback
from logging.config import dictConfig
from typing import Optional

from .formatters import ColoredConsoleFormatter, JSONFormatter, LogError, LogRecord

DEFAULT_LOGGER_NAME = "athena"


class LogEvent(enum.Enum):
    # Authentication
    AUTH_REQUEST = "auth_request"
    AUTH_SUCCESS = "auth_success"
    AUTH_FAILED = "auth_failed"
    AUTH_TWO_FACTOR_REQUIRED = "auth_two_factor_required"
    AUTH_KAIROS_EXCHANGE = "auth_kairos_exchange"
    AUTH_NETWORK_ERROR = "auth_network_error"
    TOKEN_REFRESHED = "token_refreshed"
    TOKEN_REVOKED = "token_revoked"
    TOKEN_REVOKE_FAILED = "token_revoke_failed"
    OTHER_SESSIONS_KILLED = "other_sessions_killed"
    OTHER_SESSIONS_KILL_FAILED = "other_sessions_kill_failed"
    EULA_ACCEPTED = "eula_accepted"
    POST_AUTH_FAILED = "post_auth_failed"

    # Scheduling and rotation
    ROTATION_SCHEDULED = "rotation_scheduled"
    ROTATION_STARTED = "rotation_started"
    ROTATION_COMPLETED = "rotation_completed"
    ROTATION_FAILED = "rotation_failed"
    ROTATION_SKIPPED = "rotation_skipped"
    SCHEDULER_STOPPED = "scheduler_stopped"
    SCHEDULER_JOB_ERROR = "scheduler_job_error"

    # Request signing
    INTERCEPTOR_ADDED = "interceptor_added"
    INTERCEPTOR_REMOVED = "interceptor_removed"
    INTERCEPTOR_FALLBACK = "interceptor_fallback"

    # Lifecycle
    LISTENER_REGISTERED = "listener_registered"
    LISTENER_FAILED = "listener_failed"
    EVENT_BUS_DISPOSED = "event_bus_disposed"
    TRANSPORT_CONNECTED = "transport_connected"
    TRANSPORT_RECONNECTED = "transport_reconnected"
    TRANSPORT_ERROR = "transport_error"
    SESSION_READY = "session_ready"
    SHUTDOWN_STARTED = "shutdown_started"
    SHUTDOWN_COMPLETED = "shutdown_completed"

    # Resources
    API_REQUEST_FAILED = "api_request_failed"
    CONFIG_LOADED = "config_loaded"
    CONFIG_LOAD_FAILED = "config_load_failed"
    CONFIG_UNKNOWN_OPTION = "config_unknown_option"


_logger = None


def init_logger(name: str = DEFAULT_LOGGER_NAME):
    """Bind the module level log functions to the named logger."""
    global _logger
    _logger = logging.getLogger(name)


def _log(level: int, record: LogRecord, exc: Optional[BaseException] = None) -> None:
    if _logger is None:
        init_logger()

    if exc is not None:
        record.error = LogError(
            name=type(exc).__name__,
            message=str(exc),
            stack_trace="".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
            args=exc.args if hasattr(exc, "args") else tuple(),
        )
        if not record.message:
            record.message = str(exc) or "An unspecified error occurred"

    _logger.log(level=level, msg=record.message, extra={"log_record": record})


def debug(record: LogRecord):
    """Log a debug message."""
    _log(logging.DEBUG, record)


def info(record: LogRecord):
    """Log an info message."""
    _log(logging.INFO, record)


def warning(record: LogRecord, exc: Optional[BaseException] = None):
    """Log a warning message."""
    _log(logging.WARNING, record, exc=exc)


def error(record: LogRecord, exc: Optional[BaseException] = None):
    """Log an error message."""
    _log(logging.ERROR, record, exc=exc)


def critical(record: LogRecord, exc: Optional[BaseException] = None):
    """Log a critical message."""
    _log(logging.CRITICAL, record, exc=exc)


def setup_logging(
    log_level: str = "INFO",
    log_file_path: str = "",
    log_color: bool = True,
    logger_name: str = DEFAULT_LOGGER_NAME,
) -> dict:
    """Configure console (and optional JSON file) output for the SDK logger.

    Libraries should not configure logging on import, so this is opt-in:
    applications call it once, typically with values from ``SessionConfig``.
    """
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colored_console": {"()": ColoredConsoleFormatter, "use_colors": log_color},
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "colored_console",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            logger_name: {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    if log_file_path:
        log_config["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "json",
            "filename": log_file_path,
            "mode": "a",
            "encoding": "utf-8",
        }
        log_config["loggers"][logger_name]["handlers"].append("file")

    dictConfig(log_config)
    init_logger(logger_name)
    return log_config
