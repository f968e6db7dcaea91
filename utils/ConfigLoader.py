#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import yaml
from pathlib import Path
from copy import deepcopy

# GLOBALS
_config = None

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "etc" / "config.yaml"

DEFAULTS = {
    "tool_name": "PortRelay",
    "version": "2021.09.30b",
    "Forwarder": {
        "listen_host": "0.0.0.0",
        "default_port": 1337,
        "backlog": 128,
        "buffer_size": 32768,
        "accept_poll_interval": 1.0,
    },
    "Logging": {
        "logging_levels": "All",
        "logging_file_levels": "All",
        "date_format": "%Y-%m-%d %H:%M:%S",
        "log_dir": "logs",
        "log_file_format": "%Y-%m-%d.log",
    },
}


def _merge_dicts(base: dict, override: dict) -> dict:
    """
    Shallow+nested merge: values in override win; dict values are merged recursively.
    """
    result = deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _merge_dicts(result[k], v)
        else:
            result[k] = deepcopy(v)
    return result


class ConfigLoader:
    @staticmethod
    def get_config() -> dict:
        """
        Returns the cached configuration, loading the default file on first use.
        """
        global _config
        if _config is None:
            _config = ConfigLoader.load_config()
        return _config

    @staticmethod
    def load_config(filepath=None) -> dict:
        """
        Loads the configuration file if not already cached.
        Values missing from the file fall back to DEFAULTS.
        """
        global _config

        if _config is None:
            path = Path(filepath) if filepath else DEFAULT_CONFIG_PATH
            try:
                with open(path, "r", encoding="utf-8") as file:
                    file_cfg = yaml.safe_load(file) or {}
            except FileNotFoundError:
                raise RuntimeError(f"Configuration file not found at {path}.")
            except yaml.YAMLError as e:
                raise RuntimeError(f"Error parsing YAML file: {e}")

            if not isinstance(file_cfg, dict):
                raise RuntimeError(f"Configuration file {path} must contain a mapping.")

            _config = _merge_dicts(DEFAULTS, file_cfg)

        return _config

    @staticmethod
    def reload_config(filepath=None) -> dict:
        """
        Reload the configuration from disk.

        Returns:
            dict: The reloaded configuration dictionary.
        """

        global _config
        _config = None

        return ConfigLoader.load_config(filepath)

    @staticmethod
    def forwarder_settings() -> dict:
        """Forwarder section of the active configuration."""
        return ConfigLoader.get_config().get("Forwarder", DEFAULTS["Forwarder"])
