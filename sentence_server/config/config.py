"""
Configuration access for the sentence server
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any

from pydantic import ValidationError

from sentence_server.exceptions import ConfigValidationError
from sentence_server.utils.logger import configure, get_logger

from .constants import ENV_SENTENCE_CONFIG
from .loader import load_config
from .schema import SentenceConfigSchema, validate_config_file

logger = get_logger(__name__)


class SentenceConfig:
    """Validated configuration loaded from file, environment and defaults"""

    def __init__(self, config_file: str | None = None):
        self.config_file = config_file or os.environ.get(ENV_SENTENCE_CONFIG)
        self.config = load_config(self.config_file)
        self._schema = self._validate()

    def _as_dict(self) -> dict[str, dict[str, str]]:
        return {section: dict(self.config[section]) for section in self.config.sections()}

    def _validate(self) -> SentenceConfigSchema:
        try:
            return validate_config_file(self._as_dict())
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigValidationError(
                f"Invalid configuration: {field}: {first.get('msg')}",
                field=field,
                value=first.get("input"),
                errors=exc.errors(include_url=False),
            ) from exc

    def validate_config(self) -> list[str]:
        """Return human-readable validation issues, empty when valid"""
        try:
            self._schema = self._validate()
        except ConfigValidationError as exc:
            return [
                "{}: {}".format(".".join(str(p) for p in err["loc"]), err["msg"])
                for err in exc.details.get("errors", [])
            ] or [exc.message]
        return []

    def set_override(self, section: str, key: str, value: Any) -> None:
        """Apply a runtime override (CLI flags) and re-validate"""
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, str(value))
        self._schema = self._validate()

    def get_server_config(self) -> dict[str, Any]:
        return self._schema.server.model_dump()

    def get_security_config(self) -> dict[str, Any]:
        return self._schema.security.model_dump()

    def get_logging_config(self) -> dict[str, Any]:
        return self._schema.logging.model_dump()

    def get_monitoring_config(self) -> dict[str, Any]:
        return self._schema.monitoring.model_dump()


def setup_logging(config: SentenceConfig) -> None:
    """Setup logging based on configuration."""
    log_config = config.get_logging_config()
    log_level = getattr(logging, log_config["log_level"].upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    log_file = log_config["log_file"]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        try:
            handlers.append(
                RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
            )
        except OSError:
            logger.exception("Failed to create file log handler for %s", log_file)

    configure(level=log_level, handlers=handlers)
