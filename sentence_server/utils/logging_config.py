"""JSON log lines for the sentence server.

Every record is rendered as one JSON object. Keyword arguments passed to an
adapter from ``get_structured_logger`` and fields bound for the current
connection with ``bind_context`` become top-level keys next to the fixed
header (schema, ts, level, logger, message, service, host, thread).
"""

from __future__ import annotations

import json
import logging
import socket
import traceback
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

SERVICE_NAME = "sentence_server"
LOG_SCHEMA = "log.v1"

# Attributes every LogRecord has; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "fields"}

_PASSTHROUGH_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

_connection_fields: ContextVar[dict[str, Any]] = ContextVar(
    "sentence_log_fields", default={}
)
_configured = False


@lru_cache(maxsize=1)
def _machine_name() -> str:
    # Labels log lines only; the served hostname is resolved by the manager.
    try:
        return socket.gethostname() or "unknown"
    except OSError:
        return "unknown"


def _error_block(exc_info) -> dict[str, str]:
    exc_type, exc, tb = exc_info
    return {
        "type": exc_type.__name__ if exc_type else "",
        "message": str(exc),
        "stack": "".join(traceback.format_exception(exc_type, exc, tb)).strip(),
    }


class StructuredJSONFormatter(logging.Formatter):
    """Fixed header first, then connection fields, then per-call fields"""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "schema": LOG_SCHEMA,
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
            "host": _machine_name(),
            "thread": record.threadName,
        }

        bound = getattr(record, "fields", None)
        if bound is None:
            # plain logging.getLogger() callers
            bound = _connection_fields.get()
        call_fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        for source in (bound, call_fields):
            for key, value in source.items():
                entry.setdefault(key, value)

        if record.exc_info:
            entry["error"] = _error_block(record.exc_info)
        if record.stack_info:
            entry["stack"] = record.stack_info

        return json.dumps(entry, default=repr)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Adapter whose keyword arguments become JSON fields.

    ``logger.info("Listening", event="service.start", port=8080)``
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.pop("extra", None) or {})
        for key in [k for k in kwargs if k not in _PASSTHROUGH_KWARGS]:
            extra.setdefault(key, kwargs.pop(key))
        extra["fields"] = {**_connection_fields.get(), **(self.extra or {})}
        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(
    level: int = logging.INFO, handlers: list[logging.Handler] | None = None
) -> None:
    """Replace the root handlers with JSON-formatted ones"""
    global _configured

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    for handler in handlers or [logging.StreamHandler()]:
        if handler.level == logging.NOTSET:
            handler.setLevel(level)
        if handler.formatter is None:
            handler.setFormatter(StructuredJSONFormatter())
        root.addHandler(handler)

    root.setLevel(level)
    _configured = True


def get_structured_logger(name: str, **static: Any) -> StructuredLoggerAdapter:
    """Adapter for ``name``; ``static`` fields go on every record it emits"""
    if not _configured:
        configure_logging()
    static = {k: v for k, v in static.items() if v is not None}
    return StructuredLoggerAdapter(logging.getLogger(name), static)


def bind_context(**fields: Any) -> Token:
    """Attach fields to every record logged from the current context"""
    merged = dict(_connection_fields.get())
    merged.update({k: v for k, v in fields.items() if v is not None})
    return _connection_fields.set(merged)


def clear_context(token: Token | None = None) -> None:
    if token is None:
        _connection_fields.set({})
    else:
        _connection_fields.reset(token)


@contextmanager
def logging_context(**fields: Any) -> Iterator[None]:
    """Scope of one client connection"""
    token = bind_context(**fields)
    try:
        yield
    finally:
        clear_context(token)
