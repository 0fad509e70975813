"""Structured log records and the formatters that render them."""

import dataclasses
import json
import logging
import re
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


@dataclasses.dataclass
class LogError:
    name: str
    message: str
    stack_trace: Optional[str] = None
    args: Optional[Tuple[Any, ...]] = None


@dataclasses.dataclass
class LogRecord:
    event: str
    message: str
    request_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[LogError] = None


_SENSITIVE_KEYS = {
    "access_token", "refresh_token", "password", "secret", "exchange_code",
    "code", "otp", "authorization", "two_factor_code",
}


def mask_token(token: Optional[str]) -> str:
    """Shorten a token to a recognisable, non-usable preview."""
    if not token:
        return "***"
    if len(token) <= 12:
        return "***"
    return f"{token[:8]}...{token[-4:]}"


def mask_sensitive_data(data: Any, mask_char: str = "*") -> Any:
    """Recursively mask credentials in dictionaries, lists and strings."""
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS and isinstance(value, str):
                masked[key] = mask_char * 8
            else:
                masked[key] = mask_sensitive_data(value, mask_char)
        return masked
    elif isinstance(data, list):
        return [mask_sensitive_data(item, mask_char) for item in data]
    elif isinstance(data, str):
        return mask_sensitive_string(data, mask_char)
    else:
        return data


def mask_sensitive_string(text: str, mask_char: str = "*") -> str:
    """Mask bearer/basic credentials and raw tokens embedded in free text."""
    if not isinstance(text, str):
        return text

    patterns = [
        # Authorization header values
        (r'((?:bearer|basic)\s+)([A-Za-z0-9\-_\.~=+/]{8,})', lambda m: m.group(1) + mask_char * 10),
        # eg1~ style JWT access tokens
        (r'(eg1~[A-Za-z0-9\-_\.]+)', lambda m: m.group(1)[:8] + mask_char * 10),
        # 32 character hex tokens
        (r'\b([a-f0-9]{32})\b', lambda m: m.group(1)[:8] + mask_char * 8 + m.group(1)[-4:]),
        # token fields serialized as JSON
        (r'("(?:access_token|refresh_token|password|secret|exchange_code)"\s*:\s*")([^"]+)',
         lambda m: m.group(1) + mask_char * 8),
    ]

    masked_text = text
    for pattern, replacement in patterns:
        masked_text = re.sub(pattern, replacement, masked_text, flags=re.IGNORECASE)
    return masked_text


def _error_dict(exc_info) -> Dict[str, Any]:
    exc_type, exc_value, exc_tb = exc_info
    return {
        "name": exc_type.__name__ if exc_type else "UnknownError",
        "message": str(exc_value),
        "stack_trace": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        "args": exc_value.args if hasattr(exc_value, "args") else [],
    }


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with color support and a compact one-line payload."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[95m', # Magenta
    }
    RESET = '\033[0m'

    # Fields worth surfacing on the console for failures
    ESSENTIAL_FIELDS = ('status_code', 'error_code', 'account_id', 'job_kind', 'state')

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        log_dict = self._get_simplified_log_dict(record)
        formatted = json.dumps(log_dict, ensure_ascii=False)

        use_colors = (
            self.use_colors
            and hasattr(sys.stdout, 'isatty')
            and sys.stdout.isatty()
        )
        if not use_colors:
            return formatted
        return f"{self.COLORS.get(record.levelname, '')}{formatted}{self.RESET}"

    def _get_simplified_log_dict(self, record: logging.LogRecord) -> dict:
        log_payload = getattr(record, "log_record", None)
        simplified = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S"),
            "level": record.levelname,
        }

        if not isinstance(log_payload, LogRecord):
            simplified["message"] = record.getMessage()
            return simplified

        message = log_payload.message
        if len(message) > 200:
            message = message[:200] + "..."
        simplified["event"] = log_payload.event
        simplified["message"] = message

        if log_payload.request_id:
            simplified["req_id"] = log_payload.request_id[:8]

        if log_payload.error and record.levelname in ('ERROR', 'WARNING', 'CRITICAL'):
            simplified["error"] = log_payload.error.name
            if log_payload.error.message != log_payload.message:
                simplified["error_msg"] = log_payload.error.message[:100]

        if log_payload.data and record.levelname in ('WARNING', 'ERROR', 'CRITICAL'):
            for field in self.ESSENTIAL_FIELDS:
                if field in log_payload.data:
                    simplified[field] = log_payload.data[field]

        return simplified


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._get_log_dict(record), ensure_ascii=False, default=str)

    def _get_log_dict(self, record: logging.LogRecord) -> dict:
        header = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        log_payload = getattr(record, "log_record", None)
        if isinstance(log_payload, LogRecord):
            detail = dataclasses.asdict(log_payload)
            if detail.get("data"):
                detail["data"] = mask_sensitive_data(detail["data"])
            header["detail"] = detail
        else:
            header["message"] = record.getMessage()
            if record.exc_info:
                header["error"] = _error_dict(record.exc_info)
        return header


class ConsoleJSONFormatter(JSONFormatter):
    """JSON output without stack traces, for terminals."""

    def _get_log_dict(self, record: logging.LogRecord) -> dict:
        header = super()._get_log_dict(record)
        detail_error = header.get("detail", {}).get("error")
        if detail_error:
            detail_error.pop("stack_trace", None)
        elif header.get("error"):
            header["error"].pop("stack_trace", None)
        return header
