# provision/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the boot sequence.

Handles loading settings from Pydantic model defaults, environment
variables, a YAML file and command-line arguments, applying this order of
precedence (later wins):
1. Pydantic Model Defaults
2. Environment Variables (BOOT_, APT_, SWAP_, DOCKER_, SECRETS_, PROMPT_)
3. YAML Configuration File
4. Command-Line Arguments
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/server-boot/config.yaml"


class ConfigurationError(Exception):
    """Raised when the configuration file or the resolved settings are invalid."""


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from another dictionary
    `overrides`. If a key exists in both dictionaries and its corresponding value
    is a dictionary, the function updates the nested dictionary recursively.
    Otherwise, it replaces or adds the value for the key in the `source` with the
    value from `overrides`. ``None`` values never replace an existing value.

    Returns:
        The updated `source` dictionary.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def read_yaml_config(
    config_file_path: Path,
    current_logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Reads a YAML mapping from ``config_file_path``.

    A missing file yields an empty mapping. An empty file, or one whose top
    level is not a mapping, is ignored with a warning.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if not config_file_path.is_file():
        logger_to_use.info(
            f"Configuration file '{config_file_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}

    try:
        with open(config_file_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Could not parse YAML config file '{config_file_path}': {e}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Could not read config file '{config_file_path}': {e}"
        ) from e

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{config_file_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}

    logger_to_use.info(f"Loaded configuration from {config_file_path}")
    return yaml_data


def cli_overrides(cli_args: argparse.Namespace) -> Dict[str, Any]:
    """Maps parsed command-line arguments onto the settings structure."""
    cli_arg_dict = vars(cli_args)
    overrides: Dict[str, Any] = {}
    secret_overrides: Dict[str, Any] = {}

    for cli_key, cli_value in cli_arg_dict.items():
        if cli_value is None:
            continue

        if cli_key == "timezone":
            overrides["timezone"] = cli_value
        elif cli_key == "log_file":
            overrides["log_file"] = str(cli_value)
        elif cli_key == "project_id":
            secret_overrides["project_id"] = cli_value
        elif cli_key == "allow_insecure_secret_fallbacks" and cli_value:
            secret_overrides["allow_insecure_fallbacks"] = True

    if secret_overrides:
        overrides["secrets"] = secret_overrides
    return overrides


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the precedence described in the module docstring.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file. Defaults to
            /etc/server-boot/config.yaml, which may be absent.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        ConfigurationError: If the YAML file is unreadable or validation fails.
    """
    logger_to_use = current_logger if current_logger else module_logger

    # BaseSettings reads the environment here: Model Defaults < Environment Variables.
    try:
        settings_after_env_and_defaults = AppSettings()
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise ConfigurationError(f"Invalid environment configuration: {e}") from e

    current_values_dict = settings_after_env_and_defaults.model_dump(
        exclude_defaults=False
    )

    yaml_path = Path(config_file_path or DEFAULT_CONFIG_PATH)
    current_values_dict = _deep_update(
        current_values_dict, read_yaml_config(yaml_path, logger_to_use)
    )

    if cli_args:
        current_values_dict = _deep_update(
            current_values_dict, cli_overrides(cli_args)
        )

    try:
        final_settings = AppSettings(**current_values_dict)
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise ConfigurationError(f"Configuration error: {e}") from e

    logger_to_use.info("Successfully loaded and validated application settings")
    return final_settings
