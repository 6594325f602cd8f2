"""
Logging setup for the relay.

Three handlers hang off the root logger:
- console: human-readable lines tagged with the HTTP correlation id, or
  with `ws-<client id>` inside a subscriber connection
- error file: JSON lines for ERROR and above
- Loki (optional, `LOKI_ENABLED`): JSON lines pushed via python-logging-loki

Per-connection fields (client_id, webhook_id, ...) are attached to every
record through `set_log_context()`.
"""

import json
import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from webhook_relay.constants import LOKI_MAX_LOG_SIZE_BYTES
from webhook_relay.settings import app_settings

log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# Attributes every LogRecord carries; anything else came in through `extra=`
_STANDARD_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "correlation_id",
}

_DATE_FMT = "%Y-%m-%d %H:%M:%S"


def get_correlation_id() -> str:
    from webhook_relay.middlewares.correlation_id import (
        get_correlation_id as _get_cid,
    )

    return _get_cid()


def set_log_context(**fields: Any) -> None:
    """
    Attach fields to every record logged from the current context.

    The stored mapping is replaced, never mutated, so two connections
    handled on the same loop cannot see each other's fields.

    Example:
        >>> set_log_context(client_id=7)
        >>> logger.info("Registered")  # JSON output carries client_id=7
    """
    log_context.set({**log_context.get(), **fields})


def get_log_context() -> dict[str, Any]:
    return log_context.get()


def clear_log_context() -> None:
    log_context.set({})


def _context_label() -> str:
    cid = get_correlation_id()
    if cid:
        return cid
    client_id = get_log_context().get("client_id")
    return f"ws-{client_id}" if client_id is not None else "-"


class StructuredJSONFormatter(logging.Formatter):
    """
    One JSON object per record: standard fields, request id, log context,
    `extra=` fields and the formatted exception, if any.

    Oversized messages are cut so the line stays under Loki's size limit.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "environment": app_settings.ENVIRONMENT,
        }

        cid = get_correlation_id()
        if cid:
            payload["request_id"] = cid
        payload.update(get_log_context())
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return self._fit(payload)

    @staticmethod
    def _fit(payload: dict[str, Any]) -> str:
        line = json.dumps(payload, default=str)
        if len(line) <= LOKI_MAX_LOG_SIZE_BYTES:
            return line

        overflow = len(line) - LOKI_MAX_LOG_SIZE_BYTES
        keep = max(len(payload["message"]) - overflow - 1000, 0)
        payload["message"] = payload["message"][:keep] + "... [TRUNCATED]"
        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Console formatter.

    INFO lines stay short; every other level also shows where the record
    was emitted.
    """

    INFO_FMT = "%(asctime)s - [%(correlation_id)s] %(levelname)s: %(message)s"
    DETAILED_FMT = (
        "%(asctime)s - [%(correlation_id)s] %(levelname)s: "
        "%(module)s.%(funcName)s:%(lineno)d - %(message)s"
    )

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._brief = logging.Formatter(self.INFO_FMT, datefmt=_DATE_FMT)
        self._detailed = logging.Formatter(self.DETAILED_FMT, datefmt=_DATE_FMT)

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = _context_label()
        if record.levelno == logging.INFO:
            return self._brief.format(record)
        return self._detailed.format(record)


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(HumanReadableFormatter())
    return handler


def _error_file_handler() -> logging.Handler:
    path = Path(app_settings.LOG_FILE_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setLevel(logging.ERROR)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def _loki_handler() -> logging.Handler:
    from logging_loki import LokiHandler

    handler = LokiHandler(
        url=f"{app_settings.LOKI_URL}/loki/api/v{app_settings.LOKI_VERSION}/push",
        tags={
            "application": "webhook-relay",
            "environment": app_settings.ENVIRONMENT,
        },
        version=app_settings.LOKI_VERSION,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def setup_logging() -> logging.Logger:
    """
    Install the console, error file and (optionally) Loki handlers on the
    root logger, replacing whatever handlers it had.

    A handler that cannot be created is reported through the handlers that
    could; it never prevents startup.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, app_settings.LOG_LEVEL.upper()))
    root.handlers.clear()
    root.addHandler(_console_handler())

    try:
        root.addHandler(_error_file_handler())
    except OSError as e:
        root.warning(f"Could not create file handler: {e}")

    if app_settings.LOKI_ENABLED:
        try:
            root.addHandler(_loki_handler())
            root.info("Loki handler configured successfully")
        except Exception as e:
            root.warning(f"Could not configure Loki handler: {e}")

    # Keep test output clean
    if Path(sys.argv[0]).name == "pytest":
        logging.disable(logging.ERROR)

    return root


logger = setup_logging()
