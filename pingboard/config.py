# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

"""
Config file support for pingboard.

Persistent settings live in ~/.pingboard.conf, written either as YAML or as
INI. Both formats share one layout: a ``default`` section of settings and an
optional ``hosts`` list of ``host`` or ``host,name`` entries.

Priority order: CLI args > ~/.pingboard.conf > hardcoded defaults
"""

import configparser
import logging
import os
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from pingboard.core import parse_host_lines

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.pingboard.conf")

# Mapping of config field names to their expected Python types
_CONFIG_FIELD_TYPES: Dict[str, type] = {
    "result_count": int,
    "min_delay": int,
    "color": bool,
    "log_level": str,
    "log_file": str,
}

_BOOL_VALUES = {
    "true": True,
    "yes": True,
    "1": True,
    "on": True,
    "false": False,
    "no": False,
    "0": False,
    "off": False,
}


def _coerce_field(key: str, raw_value: Any) -> Any:
    """Coerce a raw config value to the declared type of key."""
    field_type = _CONFIG_FIELD_TYPES[key]
    if field_type is bool:
        if isinstance(raw_value, bool):
            return raw_value
        parsed = _BOOL_VALUES.get(str(raw_value).strip().lower())
        if parsed is None:
            raise ValueError(f"Invalid value for config field '{key}': expected true/false, yes/no, 1/0 or on/off, got {raw_value!r}")
        return parsed
    if field_type is int and isinstance(raw_value, bool):
        raise ValueError(f"Invalid value for config field '{key}': expected int, got {raw_value!r}")
    try:
        return field_type(raw_value)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid value for config field '{key}': expected {field_type.__name__}, got {raw_value!r}") from exc


def _collect_settings(items: Iterable[Tuple[str, Any]], path: str) -> Dict[str, Any]:
    """Validate and coerce the key/value pairs of a default section."""
    settings: Dict[str, Any] = {}
    for key, raw_value in items:
        if key not in _CONFIG_FIELD_TYPES:
            logger.warning("Unknown config key '%s' in '%s'; ignoring.", key, path)
            continue
        if raw_value is None:
            logger.warning("Config key '%s' has no value in '%s'; ignoring.", key, path)
            continue
        settings[key] = _coerce_field(key, raw_value)
    return settings


def _collect_hosts(lines: Iterable[str], path: str, result: Dict[str, Any]) -> None:
    hosts = parse_host_lines(lines, path)
    if hosts:
        result["hosts"] = hosts


def load_ini_config(path: str) -> Dict[str, Any]:
    """
    Load and parse an INI-format config file.

    The ``[hosts]`` section holds bare ``host`` or ``host,name`` lines.

    Raises:
        ValueError: On parse errors or invalid field values.
    """
    parser = configparser.ConfigParser(allow_no_value=True, delimiters=("=",))
    parser.optionxform = str  # type: ignore[assignment,method-assign]  # keep display name case
    try:
        read_files = parser.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise ValueError(f"Invalid config file '{path}': {exc}") from exc
    if not read_files:
        raise ValueError(f"Config file '{path}' could not be read.")

    result: Dict[str, Any] = {}
    if parser.has_section("default"):
        result.update(_collect_settings(parser.items("default"), path))
    if parser.has_section("hosts"):
        # Bare lines carry the whole entry in the key; "host = name" is also accepted
        _collect_hosts((f"{key},{value}" if value else key for key, value in parser.items("hosts")), path, result)
    return result


def load_yaml_config(path: str) -> Dict[str, Any]:
    """
    Load and parse a YAML-format config file with ``yaml.safe_load``.

    Raises:
        ValueError: On parse errors or invalid file content.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ValueError(f"Cannot read config file '{path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file '{path}' must contain a YAML mapping at the top level, got {type(data).__name__}.")

    default_section = data.get("default") or {}
    if not isinstance(default_section, dict):
        raise ValueError(f"The 'default' section in '{path}' must be a YAML mapping.")
    result = _collect_settings(default_section.items(), path)

    hosts_section = data.get("hosts")
    if hosts_section is not None:
        if not isinstance(hosts_section, list):
            raise ValueError(f"The 'hosts' section in '{path}' must be a YAML list.")
        _collect_hosts((str(h) for h in hosts_section if h is not None), path, result)
    return result


def _is_yaml_file(path: str) -> bool:
    """
    Guess the config format: INI files open with a ``[section]`` header on
    the first non-blank, non-comment line. Anything else is YAML.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                stripped = line.strip()
                if stripped and not stripped.startswith("#"):
                    return not stripped.startswith("[")
    except OSError:
        pass
    return False


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load persistent settings, auto-detecting YAML or INI.

    Args:
        path: Path to the config file.  Defaults to ``~/.pingboard.conf``.

    Returns:
        Dictionary of config values; empty if the file does not exist.

    Raises:
        ValueError: If the file exists but cannot be parsed.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        return {}
    if _is_yaml_file(path):
        logger.debug("Loading YAML config from '%s'.", path)
        return load_yaml_config(path)
    logger.debug("Loading INI config from '%s'.", path)
    return load_ini_config(path)
