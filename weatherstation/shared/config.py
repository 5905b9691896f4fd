"""Configuration loading utilities."""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv


def get_environment() -> Optional[str]:
    """Get the current environment name.

    Returns:
        Environment name from WEATHERSTATION_ENV, or None if unset.
    """
    return os.getenv("WEATHERSTATION_ENV") or None


def get_config_path(
    config_name: str = "dashboard",
    config_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Get path to a configuration file.

    Args:
        config_name: Base name of the config file (without extension).
        config_dir: Directory containing config files. If None, uses
            the 'config' directory at the repo root.

    Returns:
        Path to ``{config_name}-{env}.yaml`` when WEATHERSTATION_ENV is set
        and that file exists, otherwise ``{config_name}.yaml``.
    """
    if config_dir is None:
        # Default to repo_root/config/
        package_dir = Path(__file__).parent.parent.parent
        config_dir = package_dir / "config"

    config_dir = Path(config_dir)

    env = get_environment()
    if env:
        env_path = config_dir / f"{config_name}-{env}.yaml"
        if env_path.exists():
            return env_path

    return config_dir / f"{config_name}.yaml"


def load_yaml_config(
    config_path: Optional[Union[str, Path]] = None,
    load_env: bool = True,
) -> dict:
    """Load YAML configuration file.

    Args:
        config_path: Path to config file. If None, uses get_config_path().
        load_env: Whether to load .env file first.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
    """
    if load_env:
        load_dotenv()

    if config_path is None:
        config_path = get_config_path()
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def get_log_level(config: dict) -> str:
    """Extract log level from config, with sensible default.

    Args:
        config: Configuration dictionary.

    Returns:
        Log level string (e.g., 'INFO', 'DEBUG').
    """
    return str(config.get("log_level", "INFO")).upper()
