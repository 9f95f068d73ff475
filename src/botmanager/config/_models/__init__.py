"""Configuration models for bot-manager.

This package contains the Pydantic models for each section of
``botmanager.toml``. All models are frozen.
"""

from botmanager.config._models._advanced import AdvancedConfig
from botmanager.config._models._common import LogLevel
from botmanager.config._models._config import Config
from botmanager.config._models._logging import LoggingConfig
from botmanager.config._models._monitoring import MonitoringConfig
from botmanager.config._models._restart import RestartConfig

__all__ = [
    "AdvancedConfig",
    "Config",
    "LogLevel",
    "LoggingConfig",
    "MonitoringConfig",
    "RestartConfig",
]
