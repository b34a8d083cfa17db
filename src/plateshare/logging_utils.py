"""Process-wide logging setup: plain or JSON output, request context, token redaction."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Iterable, Pattern, Sequence, Tuple

REDACTED = "[redacted]"

# Each pattern keeps group 1 (the label) and masks group 2 (the credential).
_CREDENTIAL_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(Bearer\s+)([A-Za-z0-9\-._~+/=]+)", re.IGNORECASE),
    re.compile(r"(api_token=)([^&\s]+)", re.IGNORECASE),
    re.compile(r"(X-API-Key[=:]\s*)([^&\s]+)", re.IGNORECASE),
)

_CONTEXT_FIELDS = ("request_id", "operation")

_PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s | %(message)s"

_THIRD_PARTY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "apscheduler")


def redact(text: str, secrets: Sequence[str] = ()) -> str:
    """Mask bearer/API tokens and any configured secret inside ``text``."""

    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(r"\1" + REDACTED, text)
    for secret in secrets:
        text = text.replace(secret, REDACTED)
    return text


class SensitiveDataFilter(logging.Filter):
    """Rewrite log records so credentials never reach a handler.

    Also guarantees the request context attributes exist, which lets the plain
    format reference ``%(request_id)s`` for records logged outside a request.
    """

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self._secrets = tuple(s.strip() for s in secrets if s and s.strip())

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - logging API
        rendered = record.getMessage()
        cleaned = redact(rendered, self._secrets)
        if cleaned != rendered:
            record.msg, record.args = cleaned, ()

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is None:
                setattr(record, field, "-")
            elif isinstance(value, str):
                setattr(record, field, redact(value, self._secrets))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; request context is included when present."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - logging API
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value and value != "-":
                entry[field] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True)


def _build_formatter(fmt: str) -> logging.Formatter:
    if (fmt or "plain").lower() == "json":
        return JsonFormatter()
    return logging.Formatter(_PLAIN_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str]) -> None:
    """Install a single redacting stream handler on the root logger.

    Server and scheduler loggers are routed through the root handler so their
    output shares the same format and redaction.
    """

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    redactor = SensitiveDataFilter(secrets)

    handler = logging.StreamHandler()
    handler.setFormatter(_build_formatter(fmt))
    handler.addFilter(redactor)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    logging.captureWarnings(True)

    for name in _THIRD_PARTY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = []
        library_logger.setLevel(level)
        library_logger.propagate = True
        library_logger.addFilter(redactor)


__all__ = ["REDACTED", "JsonFormatter", "SensitiveDataFilter", "configure_logging", "redact"]
