"""Sentence Server Configuration Package

- INI file loading with environment variable overrides
- Pydantic schema validation
"""

from .config import SentenceConfig, setup_logging
from .constants import *
from .schema import SentenceConfigSchema

__all__ = [
    "SentenceConfig",
    "setup_logging",
    "SentenceConfigSchema",
]
