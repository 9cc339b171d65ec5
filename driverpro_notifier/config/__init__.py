"""Configuration management for the DriverPro notifier."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    AppConfig,
    EmailConfig,
    HTTPConfig,
    ListenerConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    "load_config",
    "parse_app_config",
    "load_environment_config",
    "AppConfig",
    "EmailConfig",
    "HTTPConfig",
    "ListenerConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
]
