"""
Structured logging for FootballBook.

Loggers accept keyword fields next to the message:

    logger = get_logger(__name__)
    logger.info("Login succeeded", namespace="user", user_id=user.id)

Fields are rendered as JSON keys (format "json") or trailing key=value pairs
(format "text"). Values of sensitive keys are redacted before they reach any
handler.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Tuple

_RESERVED_KWARGS = {"exc_info", "stack_info", "stacklevel", "extra"}
_SENSITIVE_MARKERS = ("password", "token", "secret", "authorization", "cookie")
_HANDLER_TAG = "_footballbook_handler"

REDACTED = "***"


def _redact(fields: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if any(marker in key.lower() for marker in _SENSITIVE_MARKERS):
            out[key] = REDACTED
        else:
            out[key] = value
    return out


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that turns extra keyword arguments into record fields."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = {k: kwargs.pop(k) for k in list(kwargs) if k not in _RESERVED_KWARGS}
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = _redact(fields)
        kwargs["extra"] = extra
        return msg, kwargs


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "fields", None) or {})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with trailing key=value pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "fields", None) or {}
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger for the given module name."""
    return StructuredLogger(logging.getLogger(name), {})


def setup_logging(
    level: str = "INFO",
    fmt: str = "json",
    file_path: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger.

    Safe to call more than once; handlers installed by a previous call are
    replaced rather than duplicated.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    formatter: logging.Formatter = JsonFormatter() if fmt == "json" else TextFormatter()

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    setattr(stream, _HANDLER_TAG, True)
    root.addHandler(stream)

    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setFormatter(formatter)
        setattr(rotating, _HANDLER_TAG, True)
        root.addHandler(rotating)
