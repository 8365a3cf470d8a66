#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("gitscan")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. GITSCAN_CONFIG environment variable
    2. ~/.gitscan/ directory
    """
    if 'GITSCAN_CONFIG' in os.environ:
        path = Path(os.environ['GITSCAN_CONFIG']).expanduser()
        if path.exists():
            return path
        logger.warning(f"GITSCAN_CONFIG points to a missing file: {path}")

    gitscan_dir = Path.home() / '.gitscan'
    for filename in CONFIG_FILENAMES:
        path = gitscan_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return gitscan_dir / 'config.json'


def get_default_config():
    """Get default configuration."""
    return {
        "scan": {
            "exclude_dirs": [],
            "include_nested": False,
            "follow_symlinks": True,
        },
        "foreach": {
            "status": "all",
            "parallel": 1,
            "timeout": 0,
            "path_var": "path",
            "toplevel_var": "toplevel",
        },
        "logging": {
            "level": "INFO",
        },
    }


def read_config_file(config_path):
    """Parse a JSON, TOML or YAML config file into a dict."""
    suffix = config_path.suffix.lower()
    try:
        if suffix == '.toml':
            with open(config_path, 'rb') as f:
                file_config = tomllib.load(f)
        elif suffix in ('.yaml', '.yml'):
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f)
        else:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config from {config_path}: {e}") from e

    if file_config is None:
        return {}
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at the top level")
    return file_config


def load_config():
    """Load configuration from defaults, config file and environment."""
    config_path = get_config_path()

    config = get_default_config()

    if config_path.exists():
        logger.debug(f"Loading config from {config_path}")
        config = merge_configs(config, read_config_file(config_path))

    return apply_env_overrides(config)


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: GITSCAN_SECTION_KEY
    For example: GITSCAN_FOREACH_PARALLEL=4
    """
    env_prefix = "GITSCAN_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == 'GITSCAN_CONFIG':
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Longest config key matching the remaining parts, so that
            # FOREACH_PATH_VAR resolves to foreach.path_var
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key is None:
                break

            if i + best_match_len == len(key_parts):
                if isinstance(current_level[matched_key], list) and isinstance(typed_value, str):
                    typed_value = [part for part in typed_value.split(',') if part]
                current_level[matched_key] = typed_value
                break

            if not isinstance(current_level[matched_key], dict):
                break
            current_level = current_level[matched_key]
            i += best_match_len

    return config


def configure_logging(config, verbose=False):
    """Apply the configured log level to the package logger."""
    level_name = str(config.get('logging', {}).get('level', 'INFO')).upper()
    level = logging.DEBUG if verbose else getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown logging level: {level_name}")
    logger.setLevel(level)
