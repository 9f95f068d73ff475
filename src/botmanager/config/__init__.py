"""bot-manager configuration.

This package loads ``botmanager.toml`` into an immutable, typed Config.
Invalid fields fall back to their defaults individually; a malformed file
falls back to the defaults entirely.

Example:
    >>> from botmanager.config import safe_load_config
    >>> loaded = safe_load_config(Path("botmanager.toml"))
    >>> loaded.config.restart.max_attempts
    5
"""

from botmanager.exceptions import ConfigError, ConfigLoadError

from ._load import LoadedConfig, load_config, safe_load_config
from ._loader import CONFIG_FILENAME, read_toml_file
from ._models import (
    AdvancedConfig,
    Config,
    LoggingConfig,
    LogLevel,
    MonitoringConfig,
    RestartConfig,
)
from ._validation import ValidationIssue, build_config, validate_section

__all__ = [
    "CONFIG_FILENAME",
    "AdvancedConfig",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "LoadedConfig",
    "LogLevel",
    "LoggingConfig",
    "MonitoringConfig",
    "RestartConfig",
    "ValidationIssue",
    "build_config",
    "load_config",
    "read_toml_file",
    "safe_load_config",
    "validate_section",
]
