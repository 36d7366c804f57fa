"""
Configuration loading.

Configuration lives in a YAML file with optional sections. Missing keys fall
back to the defaults below. Example:

    api:
      base_url: https://api.lifx.com/v1
      timeout: 15
    retry:
      max_attempts: 3
      base_delay: 2
    monitor:
      check_interval: 60
      reconnect_attempts: 5
      reconnect_base_delay: 5
      reconnect_max_delay: 30
    effects:
      settle_hold: 3
    storage:
      state_file: ~/.config/flaglight/state.yaml
    logging:
      level: INFO
      file: flaglight.log
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Self

import yaml

from .exceptions import ConfigurationError
from .io import ClientConst, RetryConst
from .api.types import Const


DEFAULT_STATE_FILE = "~/.config/flaglight/state.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class FlagLightConfig:
    base_url: str = ClientConst.BASE_URL
    timeout: float = ClientConst.DEFAULT_TIMEOUT
    max_attempts: int = RetryConst.MAX_ATTEMPTS
    base_delay: float = RetryConst.BASE_DELAY
    check_interval: float = Const.CHECK_INTERVAL
    reconnect_attempts: int = Const.RECONNECT_ATTEMPTS
    reconnect_base_delay: float = Const.RECONNECT_BASE_DELAY
    reconnect_max_delay: float = Const.RECONNECT_MAX_DELAY
    settle_hold: float = Const.SETTLE_HOLD
    state_file: str = DEFAULT_STATE_FILE
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"api.base_url must be an http(s) URL, got {self.base_url!r}")
        for name in ("timeout", "check_interval"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("base_delay", "reconnect_base_delay", "reconnect_max_delay", "settle_hold"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative, got {getattr(self, name)}")
        for name in ("max_attempts", "reconnect_attempts"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {getattr(self, name)}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

    @property
    def state_path(self) -> Path:
        return Path(os.path.expanduser(self.state_file))

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration must be a mapping")
        values: dict[str, Any] = {}
        for section, keys in _SECTIONS.items():
            entries = config.get(section) or {}
            if not isinstance(entries, dict):
                raise ConfigurationError(f"Config section '{section}' must be a mapping")
            for key, attr in keys.items():
                if key in entries:
                    values[attr] = _coerce(attr, entries[key], f"{section}.{key}")
        return cls(**values)


# section -> {yaml key: attribute}
_SECTIONS: dict[str, dict[str, str]] = {
    "api": {"base_url": "base_url", "timeout": "timeout"},
    "retry": {"max_attempts": "max_attempts", "base_delay": "base_delay"},
    "monitor": {
        "check_interval": "check_interval",
        "reconnect_attempts": "reconnect_attempts",
        "reconnect_base_delay": "reconnect_base_delay",
        "reconnect_max_delay": "reconnect_max_delay",
    },
    "effects": {"settle_hold": "settle_hold"},
    "storage": {"state_file": "state_file"},
    "logging": {"level": "log_level", "file": "log_file"},
}

_TYPES = {f.name: f.type for f in fields(FlagLightConfig)}


def _coerce(attr: str, value: Any, label: str) -> Any:
    kind = _TYPES[attr]
    if value is None and kind == Optional[str]:
        return None
    try:
        if kind is int:
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError
            return int(value)
        if kind is float:
            if isinstance(value, bool):
                raise ValueError
            return float(value)
        return str(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid value for {label}: {value!r}") from None


def load_config(path: Optional[str | os.PathLike] = None) -> FlagLightConfig:
    """Load configuration from a YAML file. No path means defaults."""
    if path is None:
        return FlagLightConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigurationError(f"Config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file {path} is not valid YAML: {e}") from e
    return FlagLightConfig.from_dict(config)
