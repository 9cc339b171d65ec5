"""Configuration loader combining the optional YAML file and environment variables."""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from driverpro_notifier.logging import get_logger

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig

logger = get_logger(__name__, component="config")

DEFAULT_CONFIG_LOCATIONS = (
    Path("config.yaml"),
    Path("config") / "config.yaml",
)


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and validate the application configuration and environment variables.

    The YAML file is optional. Lookup order:
    1. ``config_path`` if given (must exist)
    2. ``config.yaml`` in the current directory
    3. ``config/config.yaml``
    4. built-in defaults

    Args:
        config_path: Optional explicit path to a YAML configuration file

    Returns:
        Tuple of (AppConfig, EnvironmentConfig)

    Raises:
        ConfigurationError: If the file is unreadable or invalid, or if
            required environment variables are missing
    """
    config_file = _find_config_file(config_path)

    config_dict: Dict[str, Any] = {}
    if config_file is not None:
        config_dict = _read_yaml(config_file)

    app_config = parse_app_config(config_dict)
    env_config = load_environment_config()

    return app_config, env_config


def parse_app_config(config_dict: Dict[str, Any]) -> AppConfig:
    """Validate a raw configuration mapping, converting pydantic errors to ConfigurationError."""
    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            if error["type"] == "extra_forbidden":
                errors.append(f"Unknown field: {field_path}")
            else:
                errors.append(f"{field_path}: {error['msg']}")

        raise ConfigurationError(
            "Configuration validation failed",
            errors=errors,
            suggestions=[
                "Review config.example.yaml for the expected format",
                "Verify field types match the expected schema",
            ],
        ) from e


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            suggestions=[f"Ensure {config_file} is readable"],
        ) from e

    if config_dict is None:
        return {}
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration file {config_file} must contain a mapping at the top level"
        )

    logger.debug(
        f"Loaded configuration file {config_file}",
        extra={"event": "config.file.loaded", "config_path": str(config_file)},
    )
    return config_dict


def _find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """Resolve the configuration file to read, or None to use defaults."""
    if config_path is not None:
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=[
                    f"Ensure {config_path} exists",
                    "Omit --config to run with built-in defaults",
                ],
            )
        return config_path

    for candidate in DEFAULT_CONFIG_LOCATIONS:
        if candidate.exists():
            return candidate

    return None
