"""Config loader for servicectl."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .schema import ServicectlConfig

USER_CONFIG_PATH = Path.home() / ".config" / "servicectl" / "config.toml"
LOCAL_CONFIG_NAME = "servicectl.toml"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _expand_path(path: str | Path) -> Path:
    return Path(path).expanduser().resolve()


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"invalid TOML in {path}: {exc}") from exc


def _expand_config_paths(config_data: dict[str, Any]) -> None:
    if "plugins" in config_data and "plugin_dirs" in config_data["plugins"]:
        config_data["plugins"]["plugin_dirs"] = [
            _expand_path(p) for p in config_data["plugins"]["plugin_dirs"]
        ]


def load_config(config_path: Path | None = None, merge_user: bool = True) -> dict[str, Any]:
    """Load and merge configuration. Later sources win.

    Order: user config, ``./servicectl.toml``, ``$SERVICECTL_CONFIG_PATH``,
    then ``config_path``.
    """
    config_data: dict[str, Any] = {}

    if merge_user and USER_CONFIG_PATH.exists():
        config_data = _deep_merge(config_data, _read_toml(USER_CONFIG_PATH))

    local_path = Path(LOCAL_CONFIG_NAME)
    if local_path.exists():
        config_data = _deep_merge(config_data, _read_toml(local_path))

    env_config = os.environ.get("SERVICECTL_CONFIG_PATH")
    if env_config:
        env_path = Path(env_config).expanduser()
        if env_path.exists():
            config_data = _deep_merge(config_data, _read_toml(env_path))

    if config_path is not None:
        if not config_path.exists():
            raise ConfigurationError(f"config file not found: {config_path}")
        config_data = _deep_merge(config_data, _read_toml(config_path))

    _expand_config_paths(config_data)
    return config_data


def load_config_model(
    config_path: Path | None = None,
    merge_user: bool = True,
) -> ServicectlConfig:
    """Load configuration and return a typed model."""
    data = load_config(config_path=config_path, merge_user=merge_user)
    return ServicectlConfig.from_dict(data)
