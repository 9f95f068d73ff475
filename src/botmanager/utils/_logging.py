"""Logging utilities for bot-manager.

This module provides a standalone structlog logger factory that writes
JSON-formatted or text-formatted logs to the supervisor's diagnostic log
file. The logger is self-contained and does not modify global structlog
configuration.
"""

import logging
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, BOTMANAGER_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv("BOTMANAGER_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def _create_logger(
    log_file_path: str,
    *,
    log_level: int = logging.INFO,
    log_format: LogFormatType = "json",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger writing to the specified file.

    Args:
        log_file_path: Path to the log file (will be opened in append mode).
        log_level: Minimum level that is written.
        log_format: Output format, either "json" or "text".

    Returns:
        A configured FilteringBoundLogger instance.
    """
    log_path = Path(log_file_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger_factory = structlog.WriteLoggerFactory(file=log_path.open("a"))

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        # Add dict_tracebacks for structured exception logging in JSON
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    wrapper_class = structlog.make_filtering_bound_logger(log_level)

    # Use wrap_logger for standalone logger creation (doesn't affect global config)
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            logger_factory(),
            processors=processors,
            wrapper_class=wrapper_class,
            context_class=dict,
        ),
    )


def create_supervisor_logger(
    log_file: Path,
    *,
    level: str = "info",
    log_format: LogFormatType = "json",
    debug: bool = False,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create the diagnostic logger for the supervisor process.

    The log level is determined by (in order of precedence):
    1. BOTMANAGER_DEBUG environment variable (if set, enables DEBUG level)
    2. The `debug` flag (advanced.debug_mode in the configuration)
    3. The `level` parameter (logging.log_level in the configuration)

    Args:
        log_file: Path to the log file, usually logs/botmanager.log.
        level: Log level threshold (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        debug: Force DEBUG level.

    Returns:
        A FilteringBoundLogger instance bound to the supervisor component.
    """
    effective_level = (
        logging.DEBUG if debug else _log_level_from_string(level, respect_env=True)
    )

    logger = _create_logger(
        str(log_file),
        log_level=effective_level,
        log_format=log_format,
    )
    return logger.bind(component="supervisor")


def create_null_logger() -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger that drops every event.

    Used when a supervisor is constructed without a diagnostic log file.
    """
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            processors=[],
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            context_class=dict,
        ),
    )
