"""Filesystem layout of a bot-manager installation.

A base directory holds the ``bots/`` directory (one subdirectory per bot),
the ``logs/`` directory and the ``botmanager.toml`` configuration file.
"""

from os import getenv
from pathlib import Path

from botmanager.config import CONFIG_FILENAME

BOTS_DIRNAME = "bots"
LOGS_DIRNAME = "logs"
SUPERVISOR_LOG_FILENAME = "botmanager.log"


def get_base_dir() -> Path:
    """Get the base directory, from BOTMANAGER_HOME or the current directory."""
    home = getenv("BOTMANAGER_HOME", None)
    return Path(home) if home else Path.cwd()


def get_bots_dir(base_dir: Path | None = None) -> Path:
    """Get the path to the bots/ directory inside the base directory."""
    return (base_dir or get_base_dir()) / BOTS_DIRNAME


def get_logs_dir(base_dir: Path | None = None) -> Path:
    """Get the path to the logs/ directory inside the base directory."""
    return (base_dir or get_base_dir()) / LOGS_DIRNAME


def get_config_file(base_dir: Path | None = None) -> Path:
    """Get the path to botmanager.toml inside the base directory."""
    return (base_dir or get_base_dir()) / CONFIG_FILENAME


def get_supervisor_log_file(logs_dir: Path) -> Path:
    """Get the path to the supervisor's own diagnostic log.

    Args:
        logs_dir: The logs directory.

    Returns:
        Path to logs/botmanager.log.
    """
    return logs_dir / SUPERVISOR_LOG_FILENAME
