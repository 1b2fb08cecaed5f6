# sentence_server/exceptions.py
"""
Custom exceptions for the sentence server.
"""

from typing import Any


class SentenceServerError(Exception):
    """Base exception for all sentence server errors."""

    error_code = "server_error"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# Config exceptions
class ConfigError(SentenceServerError):
    """Base exception for configuration-related errors."""

    error_code = "config_error"


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    error_code = "config_validation_error"

    def __init__(
        self, message: str, field: str | None = None, value: Any = None, **kwargs: Any
    ):
        details = {"field": field, "value": value, **kwargs}
        super().__init__(message, details)
        self.field = field
        self.value = value


# Startup exceptions
class StartupError(SentenceServerError):
    """Raised when the process cannot get to the point of accepting connections."""

    error_code = "startup_error"


class HostnameLookupError(StartupError):
    """Raised when the machine hostname cannot be determined."""

    error_code = "hostname_lookup_error"


class ProtocolError(SentenceServerError, ValueError):
    """Invalid arguments handed to the request parsers.

    Subclasses ValueError so low-level parser callers can catch either.
    """

    error_code = "protocol_error"
