"""Configuration loading.

Load order: defaults, then the INI file, then environment variables.
"""

import configparser
import os

from sentence_server.utils.logger import get_logger

from .constants import DEFAULTS, ENV_PREFIX

logger = get_logger(__name__)


def env_var_name(section: str, key: str) -> str:
    return f"{ENV_PREFIX}{section.upper()}_{key.upper()}"


def load_defaults() -> configparser.ConfigParser:
    config = configparser.ConfigParser(interpolation=None)
    config.read_dict(DEFAULTS)
    return config


def load_file(config: configparser.ConfigParser, path: str | None) -> bool:
    """Merge an INI file into ``config``; a missing file is not an error"""
    if not path:
        return False
    if not os.path.exists(path):
        logger.warning(
            "Configuration file not found, using defaults",
            event="config.file_missing",
            path=path,
        )
        return False
    read = config.read(path, encoding="utf-8")
    logger.debug("Loaded configuration file", event="config.file_loaded", path=path)
    return bool(read)


def apply_env_overrides(config: configparser.ConfigParser) -> list[str]:
    """Override every known key from SENTENCE_<SECTION>_<KEY> variables.

    Returns the environment variable names that were applied.
    """
    applied: list[str] = []
    for section, keys in DEFAULTS.items():
        for key in keys:
            env_var = env_var_name(section, key)
            value = os.environ.get(env_var)
            if value is None:
                continue
            if not config.has_section(section):
                config.add_section(section)
            config.set(section, key, value)
            applied.append(env_var)
    if applied:
        logger.info(
            "Applied environment overrides",
            event="config.env_overrides",
            variables=applied,
        )
    return applied


def load_config(path: str | None) -> configparser.ConfigParser:
    config = load_defaults()
    load_file(config, path)
    apply_env_overrides(config)
    return config
