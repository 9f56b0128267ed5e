"""
Configuration loading.

    defaults  <-  config.yaml  <-  ROOMBOT_* environment variables  <-  overrides

Then required keys are validated and, unless `config.immutable` is false,
the whole tree is frozen (read-only mappings, tuples).

Usage:
    from core.config import load_config

    config = load_config("config/config.yaml")
    room = config["room"]["name"]
"""

import copy
import logging
import os
import pathlib
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Optional

import yaml

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "ROOMBOT_"
ENV_NESTING = "__"
UNSET = "UNSET"

REQUIRED_KEYS = (
    "room.name",
)

DEFAULTS: Dict[str, Any] = {
    "room": {
        "name": UNSET,
    },
    "upstream": {
        "client_factory": None,         # "package.module:callable"
        "options": {},
    },
    "commands": {
        "prefix": "!",
        "case_sensitive": False,
    },
    "state": {
        "max_chat_history": 0,          # 0 = unbounded
    },
    "translation": {
        "default_ban_duration": "hour",
        "default_mute_reason": "violating_community_rules",
        "default_mute_duration_seconds": 1800,
    },
    "plugins": {
        "command_dirs": [],
        "listener_dirs": [],
        "abort_on_error": False,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "chat_file": None,
        "log_all_events": False,
    },
    "config": {
        "immutable": True,
    },
}


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded or is incomplete."""


def load_config(
    config_path="config/config.yaml",
    defaults: Optional[Mapping] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping] = None,
) -> Mapping:
    """
    Load, merge, validate and (optionally) freeze the configuration.

    Args:
        config_path: YAML file to load
        defaults: Base configuration (DEFAULTS if omitted)
        environ: Environment to read overrides from (os.environ if omitted)
        overrides: Values applied last, before validation (command-line flags)

    Returns:
        The configuration mapping

    Raises:
        ConfigError: missing/unreadable file or missing required key
    """
    LOGGER.info("Initializing application configuration")
    config = copy.deepcopy(dict(defaults if defaults is not None else DEFAULTS))

    merge_config(config, read_config_file(config_path))
    apply_env_overrides(config, os.environ if environ is None else environ)
    if overrides:
        merge_config(config, overrides)
    validate_config(config)

    if get_key(config, "config.immutable", True):
        config = freeze_config(config)
        LOGGER.info("Configuration loaded and frozen, no changes can be made to it")
    else:
        LOGGER.info("Configuration loaded (mutable)")
    return config


def read_config_file(config_path) -> Dict[str, Any]:
    """Read a YAML mapping from disk"""
    config_file = pathlib.Path(config_path)
    if not config_file.exists():
        raise ConfigError(f"Config file {config_path} not found")

    LOGGER.info(f"Attempting to load configuration file '{config_file}'")
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {config_path} is not valid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at top level")
    return data


def merge_config(base: Dict[str, Any], override: Mapping) -> Dict[str, Any]:
    """
    Merge `override` into `base` in place.
    Mappings merge recursively, everything else (scalars, lists) is replaced.
    """
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, Mapping):
            merge_config(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def apply_env_overrides(config: Dict[str, Any], environ: Mapping[str, str]) -> None:
    """
    Apply ROOMBOT_<SECTION>__<KEY>=value variables.

    Values are parsed as YAML so "true", "30" or "[a, b]" keep their type.
    """
    for name, raw_value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [part.lower() for part in name[len(ENV_PREFIX):].split(ENV_NESTING) if part]
        if not path:
            continue

        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse value for environment variable '{name}': {e}") from e

        node = config
        for part in path[:-1]:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[path[-1]] = value
        LOGGER.info(f"Config override from environment: {'.'.join(path)}")


def validate_config(config: Mapping) -> None:
    """Raise ConfigError for any required key left empty or UNSET"""
    for key in REQUIRED_KEYS:
        value = get_key(config, key)
        if value is None or value == "" or value == UNSET:
            raise ConfigError(f"No value has been set in config for key: {key}")


def get_key(config: Mapping, dotted_key: str, default: Any = None) -> Any:
    """Read a nested key like 'commands.prefix'"""
    node: Any = config
    for part in dotted_key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def freeze_config(value: Any) -> Any:
    """Deep-freeze: mappings become read-only, lists become tuples"""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze_config(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_config(v) for v in value)
    return value
