#!/usr/bin/env python3
"""
Settings Loader

Reads the YAML settings for the wordchain service. Settings are looked up in
the project's configs directory, preferring an environment-specific file
(settings_<environment>.yaml) over the shared default (settings.yaml).
Values missing from the file fall back to DEFAULT_SETTINGS.
"""

import copy
import os
import yaml

DEFAULT_ENVIRONMENT = "development"

DEFAULT_SETTINGS = {
    "database": {
        "host": "localhost",
        "port": 5432,
        "dbname": None,
        "user": None,
        "password": "",
        "min_connections": 1,
        "max_connections": 10,
        "connect_timeout": 10,
        "pool_timeout": None,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 8080,
    },
    "ingest": {
        "max_workers": 8,
    },
}

REQUIRED_DATABASE_PARAMS = ("host", "dbname", "user")


class SettingsError(Exception):
    """Raised when the settings file is missing, unreadable or incomplete."""


def resolve_environment(environment=None):
    """Return `environment`, else $WORDCHAIN_ENV, else "development"."""
    return environment or os.getenv("WORDCHAIN_ENV", DEFAULT_ENVIRONMENT)


def find_config_dir(start_dir=None):
    """
    Walk up from `start_dir` until a directory containing configs/ is found.

    Returns:
        str or None: Path to the configs directory
    """
    project_root = start_dir or os.path.dirname(os.path.abspath(__file__))

    # Stop at filesystem root
    while project_root != os.path.dirname(project_root):
        candidate = os.path.join(project_root, "configs")
        if os.path.isdir(candidate):
            return candidate
        project_root = os.path.dirname(project_root)

    return None


def merge_settings(base, override):
    """Recursively merge `override` into a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(environment=None, config_dir=None, logger=None):
    """
    Load settings for an environment.

    Args:
        environment (str, optional): Environment name, defaults to $WORDCHAIN_ENV
            or "development"
        config_dir (str, optional): Directory holding the YAML files
        logger: Logger instance for logging which file was used

    Returns:
        dict: Settings merged over DEFAULT_SETTINGS, plus an "environment" key

    Raises:
        SettingsError: If no file is found, a file cannot be parsed, or
            required database parameters are missing
    """
    environment = resolve_environment(environment)
    config_dir = config_dir or find_config_dir()
    if config_dir is None:
        raise SettingsError("No configs directory found")

    candidates = [
        os.path.join(config_dir, f"settings_{environment}.yaml"),
        os.path.join(config_dir, "settings.yaml"),
    ]

    for config_path in candidates:
        if not os.path.exists(config_path):
            continue

        try:
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SettingsError(
                f"Error loading settings from {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise SettingsError(f"Settings in {config_path} must be a mapping")

        settings = merge_settings(DEFAULT_SETTINGS, loaded)
        settings["environment"] = environment

        missing = [param for param in REQUIRED_DATABASE_PARAMS
                   if not settings["database"].get(param)]
        if missing:
            raise SettingsError(
                f"Missing required database parameter(s): {', '.join(missing)}")

        if logger:
            logger.info("Settings loaded", extra={
                "metrics": {
                    "config_path": config_path,
                    "environment": environment,
                }
            })
        return settings

    raise SettingsError(
        f"No settings file found for environment '{environment}' in {config_dir}")
