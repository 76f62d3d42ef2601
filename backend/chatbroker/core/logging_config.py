"""
Centralized logging configuration for the chat broker.

This module provides:
- Console output with colored formatting
- Rotating file output with JSON structured logging
- Redaction of provider keys and auth headers in messages and payloads
"""

import json
import logging
import logging.handlers
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

SENSITIVE_KEYS = ['password', 'secret', 'authorization', 'api_key', 'api-key', 'apikey', 'access_token', 'refresh_token', 'key_hash']

# Provider key shapes (sk-..., sk-ant-...)
_SECRET_PATTERN = re.compile(r"\b(sk-[A-Za-z0-9]{1,5})[A-Za-z0-9_\-]{8,}")


def redact_secrets(text: str) -> str:
    """Replace anything that looks like a provider key with its short prefix."""
    return _SECRET_PATTERN.sub(r"\1***", text)


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to console output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',      # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        # Format a copy so file handlers see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{level_color}{record.levelname:8s}{self.COLORS['RESET']}"
        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """Custom formatter to output structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        # Structured context passed as extra={"extra_fields": {...}}
        if hasattr(record, 'extra_fields'):
            log_data.update(filter_sensitive_data(record.extra_fields))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class SecretRedactionFilter(logging.Filter):
    """Masks provider keys in the rendered message before any handler sees it."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Libraries whose INFO output only repeats what the broker already logs
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(path: str, level: int, json_format: bool) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(config: Any) -> None:
    """
    Configure the root logger from the application settings.

    Replaces any existing root handlers, so calling it again (e.g. on every
    app startup in tests) does not duplicate output. Every handler gets the
    secret redaction filter.

    Args:
        config: Settings with log_level, log_console_enabled, log_file_enabled,
            log_file_path, log_json_format and log_llm_calls
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    handlers = []
    if config.log_console_enabled:
        handlers.append(_console_handler(level))
    if config.log_file_enabled:
        handlers.append(_file_handler(config.log_file_path, level, config.log_json_format))

    redaction = SecretRedactionFilter()
    for handler in handlers:
        handler.addFilter(redaction)
        root_logger.addHandler(handler)

    # Per-call provider logs are INFO; raise the threshold when they are disabled
    if not config.log_llm_calls:
        logging.getLogger("chatbroker.llm").setLevel(logging.WARNING)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialized",
        extra={"extra_fields": {
            "level": logging.getLevelName(level),
            "console": config.log_console_enabled,
            "file": config.log_file_path if config.log_file_enabled else None,
        }}
    )


def filter_sensitive_data(data: Any, sensitive_keys: Optional[list] = None) -> Any:
    """
    Copy of ``data`` safe to log.

    Values under keys containing any of ``sensitive_keys`` become
    ``***FILTERED***``; strings anywhere else have provider keys masked.
    """
    if sensitive_keys is None:
        sensitive_keys = SENSITIVE_KEYS

    if isinstance(data, dict):
        return {
            key: "***FILTERED***" if any(sensitive in str(key).lower() for sensitive in sensitive_keys)
            else filter_sensitive_data(value, sensitive_keys)
            for key, value in data.items()
        }
    elif isinstance(data, list):
        return [filter_sensitive_data(item, sensitive_keys) for item in data]
    elif isinstance(data, str):
        return redact_secrets(data)
    else:
        return data


def truncate_large_data(data: str, max_length: int = 5000) -> str:
    """Cut ``data`` to ``max_length`` characters, noting the original length."""
    if len(data) <= max_length:
        return data
    return data[:max_length] + f"... (truncated, total length: {len(data)})"
