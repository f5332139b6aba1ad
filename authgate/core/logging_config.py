"""
Logging setup for authgate.

Standard-library logging, configured once from the lifespan:

    setup_logging("INFO", json_format=True)

Production writes one JSON object per line; development gets a short
colored line with the request/security context appended. Every handler
carries a RedactionFilter, so a bearer token, a JWT or a password that
slips into a message or an `extra` never reaches the output.
"""

import json
import logging
import logging.config
import re
from datetime import datetime, timezone
from typing import Any, Optional


# Context keys the middleware and security code pass through `extra`.
CONTEXT_FIELDS = ("request_id", "client_ip", "method", "path", "status_code", "duration_ms", "tier", "error_code")

SENSITIVE_KEYS = frozenset({"password", "password_hash", "token", "authorization", "secret"})

REDACTED = "[redacted]"

_BEARER_RE = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/=-]+")
_JWT_RE = re.compile(r"\beyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*")

_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def redact(text: str) -> str:
    """Mask bearer credentials and anything shaped like a JWT."""
    text = _BEARER_RE.sub(f"Bearer {REDACTED}", text)
    return _JWT_RE.sub(REDACTED, text)


class RedactionFilter(logging.Filter):
    """Scrub credentials from the message and the extras of every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = redact(message)
        if scrubbed != message:
            record.msg, record.args = scrubbed, None
        for key in list(vars(record)):
            if key.lower() in SENSITIVE_KEYS:
                setattr(record, key, REDACTED)
        return True


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line; extras become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_extras(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Terminal output for development."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = (
            f"{self.DIM}{when}{self.RESET} {color}{record.levelname:8}{self.RESET} "
            f"{self.DIM}{record.name}{self.RESET} - {record.getMessage()}"
        )

        context = " ".join(
            f"{key}={getattr(record, key)}" for key in CONTEXT_FIELDS if hasattr(record, key)
        )
        if context:
            line += f" {self.DIM}[{context}]{self.RESET}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# Libraries that are chatty at INFO.
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


def logging_dict_config(level: str, json_format: bool, log_file: Optional[str]) -> dict:
    level = level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "json" if json_format else "colored",
            "filters": ["redact"],
        },
    }
    if log_file:
        # Files are always machine-read.
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "formatter": "json",
            "filters": ["redact"],
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"redact": {"()": RedactionFilter}},
        "formatters": {
            "json": {"()": JSONFormatter},
            "colored": {"()": ColoredFormatter},
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def setup_logging(level: str = "INFO", json_format: bool = False, log_file: Optional[str] = None) -> None:
    """Replace the root logger's handlers with authgate's."""
    logging.config.dictConfig(logging_dict_config(level, json_format, log_file))
