"""Logging entry points used across the sentence server."""

from __future__ import annotations

import logging
from typing import Any

from .logging_config import (
    StructuredLoggerAdapter,
    bind_context,
    clear_context,
    configure_logging,
    get_structured_logger,
    logging_context,
)

__all__ = [
    "configure",
    "get_logger",
    "bind_context",
    "clear_context",
    "logging_context",
]


def configure(
    *, level: int = logging.INFO, handlers: list[logging.Handler] | None = None
) -> None:
    configure_logging(level=level, handlers=handlers)


def get_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """Structured adapter for ``name`` with optional static fields."""
    return get_structured_logger(name, **context)
