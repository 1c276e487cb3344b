"""Structured logging for the API: JSON lines, correlation ids, redaction.

Log calls use an event name as the message and put the data in ``extra``::

    logger.warning("rate_limit.exceeded", extra={"tier": "BROWSE", "limit": 100})

Every line written by the handler installed in ``configure_logging`` gets:
- the current request id (from a ContextVar set by the request middleware)
- secrets and client-address fields replaced by ``[REDACTED]``
- client identities replaced by a short SHA-256 digest
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from cosmic_index.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Values under these keys never reach a log line
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "api_key",
        "x-api-key",
        "authorization",
        "token",
        "secret",
        "password",
        "cursor_secret",
        "redis_url",
        "cookie",
        "set-cookie",
        "x-forwarded-for",
        "x-real-ip",
    }
)

# Values under these keys are logged as a digest so requests from one client
# can still be correlated
IDENTITY_KEYS: frozenset[str] = frozenset({"client_identity", "identity"})

# Standard LogRecord attributes; everything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(vars(LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}

_HANDLER_MARKER = "_cosmic_index_handler"


def set_request_id(request_id: str | None) -> None:
    """Bind the correlation id of the request being handled."""
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_identity(value: str) -> str:
    """Short, stable digest of a client identity for log fields."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


class Redactor:
    """Scrubs sensitive values out of log payloads, recursing into containers."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        self.sensitive_keys = frozenset(
            k.lower() for k in (sensitive_keys if sensitive_keys is not None else SENSITIVE_KEYS_DEFAULT)
        )

    def scrub_field(self, key: str, value: Any) -> Any:
        lowered = key.lower()
        if lowered in self.sensitive_keys:
            return REDACTED
        if lowered in IDENTITY_KEYS and isinstance(value, str):
            return hash_identity(value)
        return self.scrub(value)

    def scrub(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: self.scrub_field(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.scrub(v) for v in value)
        return value

    def extras(self, record: LogRecord) -> dict[str, Any]:
        """Fields a log call passed through ``extra``, scrubbed."""
        return {
            key: self.scrub_field(key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub ``extra`` fields in place, so every formatter sees safe values."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in self.redactor.extras(record).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, extras."""

    def __init__(self, *, sensitive_keys: Iterable[str] | None = None, ensure_ascii: bool = True) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(self.redactor.extras(record))

        request_id = payload.get("request_id") or get_request_id()
        if request_id:
            payload["request_id"] = request_id
        else:
            payload.pop("request_id", None)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


class PlainFormatter(logging.Formatter):
    """Human-readable lines for local development."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s")

    def format(self, record: LogRecord) -> str:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            record.request_id = "-"
        return super().format(record)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Stdout stream, or a (rotating) file when ``output == "file"``."""

    if log_settings.output != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/cosmic-index.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install the API's handler on the root logger.

    Safe to call repeatedly (each app built in tests calls it): the handler
    installed by a previous call is replaced, handlers installed by anything
    else are left alone.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(PlainFormatter() if cfg.format == "plain" else JsonFormatter())
    setattr(handler, _HANDLER_MARKER, True)

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            root_logger.removeHandler(existing)
            existing.close()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # Avoid double logging from uvicorn if it gets re-configured
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
