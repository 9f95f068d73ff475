"""Utilities shared across bot-manager."""

from ._logging import create_null_logger, create_supervisor_logger
from ._paths import (
    get_base_dir,
    get_bots_dir,
    get_config_file,
    get_logs_dir,
    get_supervisor_log_file,
)

__all__ = [
    "create_null_logger",
    "create_supervisor_logger",
    "get_base_dir",
    "get_bots_dir",
    "get_config_file",
    "get_logs_dir",
    "get_supervisor_log_file",
]
