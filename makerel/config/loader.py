# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Load the optional makerel YAML file into a MakerelConfig.

makerel runs fine with no config at all: the defaults describe a stock perl
checkout. A file only overrides what it names. Unknown keys, wrong types
and unreadable files all stop the run before any release work starts.
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from makerel.config.exceptions import ConfigLoadError, ConfigValidationError
from makerel.config.schema import MakerelConfig


def _load_overrides(config_path: Path) -> dict[str, Any]:
    """Return the mapping stored in config_path; a blank file is an empty mapping."""
    if not config_path.is_file():
        reason = "not found" if not config_path.exists() else "not a regular file"
        raise ConfigLoadError(f"Config file {reason}: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as handle:
            overrides = yaml.safe_load(handle)
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if overrides is None:
        return {}
    if not isinstance(overrides, dict):
        raise ConfigLoadError(
            f"{config_path} must hold a YAML mapping of settings, "
            f"not a {type(overrides).__name__}"
        )
    return overrides


def load_config(config_path: Optional[Path]) -> MakerelConfig:
    """
    Build the run configuration.

    Args:
        config_path: YAML file with overrides, or None for the built-in defaults.

    Raises:
        ConfigLoadError: The file is missing, unreadable or not a YAML mapping.
        ConfigValidationError: A key is unknown or a value has the wrong shape.
    """
    if config_path is None:
        return MakerelConfig()

    overrides = _load_overrides(config_path)
    try:
        return MakerelConfig.model_validate(overrides)
    except ValidationError as err:
        raise ConfigValidationError(f"Invalid settings in {config_path}:\n{err}") from err
