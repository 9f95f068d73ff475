"""Logging configuration model.

This module provides the LoggingConfig Pydantic model for per-bot log files
and the supervisor's own diagnostic log.
"""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from botmanager.config._models._common import LogLevel


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        log_normal_operations: Write bot stdout and clean-exit markers to log files.
        log_errors: Write bot stderr, crash markers and process errors to log files.
        max_log_files: Log files kept per bot. Zero or negative keeps all.
        date_organized: Group log files into one directory per day.
        console_timestamps: Prefix console lines with the local time.
        log_level: Threshold for the supervisor's diagnostic log.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", strict=True
    )

    log_normal_operations: bool = True
    log_errors: bool = True
    max_log_files: int = 10
    date_organized: bool = True
    console_timestamps: bool = True
    log_level: LogLevel = Field(default=LogLevel.INFO, strict=False)
