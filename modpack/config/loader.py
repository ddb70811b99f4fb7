# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader. Reads YAML from disk and produces a validated, frozen ModpackConfig.

The loading pipeline is linear:
  1. Read raw text from the file
  2. Parse as YAML into a plain dict
  3. Hand the dict to pydantic for schema validation
  4. Return the frozen, immutable config object

If anything goes wrong at any step, we fail immediately with a clear error.
A broken config stops the build before it deletes the previous output.
Without a config file every setting takes its default (`default_config`).
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from modpack.config.exceptions import ConfigLoadError, ConfigValidationError
from modpack.config.schema import ModpackConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed dict.

    We explicitly check for file existence before parsing, because
    yaml.safe_load gives cryptic errors on missing files. An empty file is
    treated as an empty mapping.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't valid YAML.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Path) -> ModpackConfig:
    """
    Load, validate, and freeze a config file into a ModpackConfig object.

    Args:
        config_path: Path to a YAML config file.

    Returns:
        A fully validated, frozen ModpackConfig instance.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations (wrong types, unknown keys, bad architectures).
    """
    raw_data = _read_yaml_file(config_path)

    try:
        config = ModpackConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}"
        ) from err

    return config


def default_config() -> ModpackConfig:
    """The configuration used when no --config is given."""
    return ModpackConfig()
