from __future__ import annotations

import logging
import os
from typing import Any, Dict

from dotenv import dotenv_values

from talk.protocol.constants import DEFAULT_TALK_URL

DEFAULT_CONFIG: Dict[str, Any] = {
    "base_url": "http://localhost:8888",
    "channel_key": "",
    "token": "",
    "send_path": "/chat",
    "talk_url": DEFAULT_TALK_URL,
    "production": "auto",
    "dev_poll_interval": 0.5,
    "repoll_delay": 2.5,
    "request_timeout": 60.0,
    "log_level": "INFO",
}

CHANNEL_CONFIG: Dict[str, Any] = DEFAULT_CONFIG.copy()

_PRODUCTION_CHOICES = ("auto", "true", "false")


class ConfigError(Exception):
    """Raised when configuration values are invalid."""

    pass


def load_config(env_path: str = ".env") -> Dict[str, Any]:
    """
    Fill ``CHANNEL_CONFIG`` from ``CHANNEL_<KEY>`` settings.

    The process environment wins over the env file, which wins over
    ``DEFAULT_CONFIG``. Values in the file are read without being exported.
    """
    file_values = dotenv_values(env_path) if os.path.exists(env_path) else {}
    settings = {**file_values, **os.environ}

    for key, default_value in DEFAULT_CONFIG.items():
        raw = settings.get(f"CHANNEL_{key.upper()}")
        CHANNEL_CONFIG[key] = default_value if raw is None else _coerce_type(key, raw, type(default_value))

    _validate_config()
    logging.getLogger().setLevel(CHANNEL_CONFIG["log_level"].upper())
    return CHANNEL_CONFIG


def _coerce_type(key: str, value: str, target_type: type) -> Any:
    try:
        return target_type(value)
    except ValueError as exc:
        raise ConfigError(f"CHANNEL_{key.upper()}={value!r} is not a valid {target_type.__name__}") from exc


def _validate_config() -> None:
    if not str(CHANNEL_CONFIG["base_url"]).startswith(("http://", "https://")):
        raise ConfigError("base_url must be an http(s) URL")
    if not str(CHANNEL_CONFIG["talk_url"]).endswith("/"):
        raise ConfigError("talk_url must end with '/'")
    if str(CHANNEL_CONFIG["production"]).lower() not in _PRODUCTION_CHOICES:
        raise ConfigError("production must be one of auto/true/false")
    if CHANNEL_CONFIG["dev_poll_interval"] <= 0:
        raise ConfigError("dev_poll_interval must be positive")
    if CHANNEL_CONFIG["repoll_delay"] <= 0:
        raise ConfigError("repoll_delay must be positive")
    if CHANNEL_CONFIG["request_timeout"] <= 0:
        raise ConfigError("request_timeout must be positive")
    if str(CHANNEL_CONFIG["log_level"]).upper() not in logging.getLevelNamesMapping():
        raise ConfigError(f"Unknown log_level {CHANNEL_CONFIG['log_level']}")


def production_override(config: Dict[str, Any]) -> Any:
    """Map the ``production`` setting to True/False, or None for detection from the URL."""
    choice = str(config.get("production", "auto")).lower()
    if choice == "auto":
        return None
    return choice == "true"


__all__ = ["CHANNEL_CONFIG", "DEFAULT_CONFIG", "ConfigError", "load_config", "production_override"]
