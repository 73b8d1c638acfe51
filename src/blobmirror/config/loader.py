"""Configuration loader with environment variable expansion and overrides."""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from blobmirror.config.models import AppConfig

# Regex pattern for environment variable: matches ${VAR_NAME} exactly
ENV_VAR_PATTERN = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")

# BLOB_MIRROR__REDIS__URL overrides redis.url
ENV_OVERRIDE_PREFIX = "BLOB_MIRROR__"
ENV_OVERRIDE_SEPARATOR = "__"


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigFileNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the YAML file cannot be parsed."""


class EnvVarNotFoundError(ConfigError):
    """Raised when an environment variable is not found."""


def expand_env_vars(data: Any) -> Any:
    """Expand environment variables in the configuration data.

    Only expands complete string values matching ${VAR_NAME} pattern.
    Does not expand partial matches like "prefix${VAR}suffix".

    Args:
        data: Configuration data (dict, list, or scalar value).

    Returns:
        Data with environment variables expanded.

    Raises:
        EnvVarNotFoundError: If an environment variable is not defined.
    """
    if isinstance(data, dict):
        return {key: expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        match = ENV_VAR_PATTERN.match(data)
        if match:
            var_name = match.group(1)
            value = os.environ.get(var_name)
            if value is None:
                raise EnvVarNotFoundError(
                    f"Environment variable '{var_name}' not found"
                )
            return value
        return data
    else:
        return data


def apply_env_overrides(
    data: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Overlay ``BLOB_MIRROR__SECTION__KEY`` variables on the configuration.

    Values are kept as strings; Pydantic converts them during validation.

    Args:
        data: Configuration data loaded from the file.
        environ: Environment to read. Defaults to ``os.environ``.

    Returns:
        A new dict with the overrides applied.

    Raises:
        ConfigError: If an override targets a non-mapping value.
    """
    environ = os.environ if environ is None else environ
    result = dict(data)

    for name, value in sorted(environ.items()):
        if not name.startswith(ENV_OVERRIDE_PREFIX):
            continue
        path = [
            part.lower()
            for part in name[len(ENV_OVERRIDE_PREFIX) :].split(ENV_OVERRIDE_SEPARATOR)
        ]
        if not all(path):
            continue

        node = result
        for part in path[:-1]:
            child = node.get(part)
            if child is None:
                child = {}
            elif not isinstance(child, dict):
                raise ConfigError(f"Cannot override '{name}': '{part}' is not a section")
            else:
                child = dict(child)
            node[part] = child
            node = child
        node[path[-1]] = value

    return result


def load_config(path: Path) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Validated AppConfig instance.

    Raises:
        ConfigFileNotFoundError: If the file does not exist.
        ConfigParseError: If the YAML cannot be parsed.
        EnvVarNotFoundError: If an environment variable is not defined.
        ValidationError: If the configuration fails Pydantic validation.
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}") from e

    if raw_data is None:
        raw_data = {}
    if not isinstance(raw_data, dict):
        raise ConfigParseError("Configuration root must be a mapping")

    expanded_data = expand_env_vars(raw_data)
    return AppConfig(**apply_env_overrides(expanded_data))
