"""Configuration management for the CLI."""

import os
from pathlib import Path
from typing import Any

import yaml

# Environment variable -> store setting
ENV_OVERRIDES = {
    "PROPMAN_BACKEND": "backend",
    "PROPMAN_PATH": "path",
    "PROPMAN_DATABASE": "database",
    "PROPMAN_TABLE": "table",
    "PROPMAN_RELOAD": "reload",
    "PROPMAN_UPDATE": "update",
    "PROPMAN_INTERVAL": "interval",
}


class Config:
    """Configuration management for the CLI application."""

    @staticmethod
    def from_file(path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ValueError(f"Error reading config file: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return data

    @staticmethod
    def get_config_paths() -> list[Path]:
        """Get the default configuration file paths to check."""
        paths = []

        # User config
        xdg_config_home = Path(
            os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        )
        paths.append(xdg_config_home / "propman" / "config.yaml")

        # Project config
        paths.append(Path(".propman.yaml"))
        paths.append(Path("propman.yaml"))

        return paths

    @staticmethod
    def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
        """Merge configuration dictionaries; later ones win."""
        result: dict[str, Any] = {}
        for config in configs:
            result.update({k: v for k, v in config.items() if v is not None})
        return result


def get_config_paths() -> list[Path]:
    """Get configuration paths in precedence order."""
    return Config.get_config_paths()


def env_overrides() -> dict[str, Any]:
    """Store settings taken from PROPMAN_* environment variables."""
    overrides = {}
    for variable, setting in ENV_OVERRIDES.items():
        if value := os.environ.get(variable):
            overrides[setting] = value
    return overrides


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from files and environment variables.

    Default locations are read first (last one wins for conflicting
    keys), then an explicit ``path``, then environment overrides.
    """
    config: dict[str, Any] = {}

    for default_path in get_config_paths():
        if default_path.exists():
            config = Config.merge_configs(config, Config.from_file(default_path))

    if path is not None:
        config = Config.merge_configs(config, Config.from_file(path))

    return Config.merge_configs(config, env_overrides())
