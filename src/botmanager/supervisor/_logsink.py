"""Per-run log files for supervised bots.

Every run of a bot gets its own append-only log file containing a start
marker, the bot's raw output (gated by the logging flags) and an exit marker.
Files live under ``logs/<bot>/``, either grouped by day
(``logs/<bot>/2026-10-18/14-03-59.log``) or flat
(``logs/<bot>/2026-10-18-14-03-59.log``). Older files beyond the configured
limit are deleted, newest kept.
"""

import contextlib
from pathlib import Path
from typing import TYPE_CHECKING, final

from botmanager.utils import create_null_logger

if TYPE_CHECKING:
    from pendulum import DateTime
    from structlog.typing import FilteringBoundLogger

    from botmanager.config import LoggingConfig

LOG_SUFFIX = ".log"


def format_start_marker(name: str, timestamp: str, *, is_restart: bool) -> str:
    """Format the line written when a bot starts."""
    kind = "(RESTART)" if is_restart else "(INITIAL)"
    return f"\n=== Bot {name} started at {timestamp} {kind} ===\n"


def format_exit_marker(
    name: str,
    exit_code: int | None,
    signal: str | None,
    timestamp: str,
) -> str:
    """Format the line written when a bot's process exits."""
    return (
        f"=== Bot {name} exited with code {exit_code} "
        f"(signal: {signal}) at {timestamp} ===\n"
    )


def format_error_marker(name: str, message: str, timestamp: str) -> str:
    """Format the line written when a bot's process cannot be run."""
    return f"=== Bot {name} process error at {timestamp}: {message} ===\n"


def build_log_path(
    logs_dir: Path,
    unit_name: str,
    started_at: "DateTime",  # noqa: UP037
    *,
    date_organized: bool,
) -> Path:
    """Build the log file path for one run of a bot.

    Args:
        logs_dir: The logs directory.
        unit_name: The bot name.
        started_at: Local start time of the run.
        date_organized: Whether to group files into one directory per day.

    Returns:
        Path of the log file for this run.
    """
    date_str = started_at.format("YYYY-MM-DD")
    time_str = started_at.format("HH-mm-ss")
    unit_dir = logs_dir / unit_name

    if date_organized:
        return unit_dir / date_str / f"{time_str}{LOG_SUFFIX}"
    return unit_dir / f"{date_str}-{time_str}{LOG_SUFFIX}"


def unique_log_path(path: Path) -> Path:
    """Return the path, or the first free `<stem>-<n>` variant if it exists.

    Runs of a bot that start within the same second get separate files.
    """
    candidate = path
    n = 0
    while candidate.exists():
        n += 1
        candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
    return candidate


def _mtime_key(path: Path) -> tuple[int, str]:
    try:
        return (path.stat().st_mtime_ns, path.name)
    except OSError:
        return (0, path.name)


def cleanup_old_logs(
    unit_log_dir: Path,
    max_files: int,
    *,
    keep: Path | None = None,
) -> list[Path]:
    """Delete a bot's oldest log files beyond the limit.

    Files are ranked by modification time, newest first, with the file name
    breaking ties. The file given as ``keep`` (the log of the run being
    started) is always retained and counts towards the limit.

    Args:
        unit_log_dir: The bot's log directory (logs/<bot>).
        max_files: Number of files to keep. Zero or negative keeps all.
        keep: A file that must not be deleted.

    Returns:
        The deleted files.

    Raises:
        OSError: If a file cannot be deleted.
    """
    if max_files <= 0 or not unit_log_dir.is_dir():
        return []

    files = sorted(unit_log_dir.rglob(f"*{LOG_SUFFIX}"), key=_mtime_key, reverse=True)

    remaining = max_files
    if keep is not None and keep in files:
        files.remove(keep)
        remaining -= 1

    deleted: list[Path] = []
    for path in files[max(remaining, 0) :]:
        path.unlink(missing_ok=True)
        deleted.append(path)

        # Drop day directories left empty
        parent = path.parent
        if parent != unit_log_dir:
            with contextlib.suppress(OSError):
                parent.rmdir()

    return deleted


@final
class FileLogSink:
    """Log file for one run of a bot, written append-only."""

    __slots__ = ("_file", "path")

    def __init__(self, path: Path) -> None:
        """Create the log file.

        Args:
            path: A log file path that does not exist yet, in an existing
                directory.
        """
        self.path = path
        self._file = path.open("x", encoding="utf-8")

    @property
    def closed(self) -> bool:
        """Whether the sink has been closed."""
        return self._file.closed

    def write(self, text: str) -> None:
        """Append text and flush it to disk. Writes after close are dropped."""
        if self._file.closed:
            return
        _ = self._file.write(text)
        self._file.flush()

    def close(self) -> None:
        """Close the log file."""
        self._file.close()


@final
class FileLogSinkProvider:
    """Creates per-run log files under the logs directory.

    No file is created when both ``log_normal_operations`` and ``log_errors``
    are disabled.
    """

    __slots__ = ("_config", "_logger", "logs_dir")

    def __init__(
        self,
        logs_dir: Path,
        config: "LoggingConfig",  # noqa: UP037
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the provider.

        Args:
            logs_dir: The logs directory.
            config: Logging configuration (flags and file limit).
            logger: Diagnostic logger for cleanup results.
        """
        self.logs_dir = logs_dir
        self._config = config
        self._logger = logger if logger is not None else create_null_logger()

    def open(self, unit_name: str, started_at: "DateTime") -> FileLogSink | None:  # noqa: UP037
        """Open the log file for a new run of a bot.

        A run starting in the same second as an earlier one gets a
        numbered file next to it.

        Args:
            unit_name: The bot name.
            started_at: Local start time of the run.

        Returns:
            The opened sink, or None if file logging is disabled.
        """
        if not (self._config.log_normal_operations or self._config.log_errors):
            return None

        path = build_log_path(
            self.logs_dir,
            unit_name,
            started_at,
            date_organized=self._config.date_organized,
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        path = unique_log_path(path)
        sink = FileLogSink(path)

        try:
            deleted = cleanup_old_logs(
                self.logs_dir / unit_name,
                self._config.max_log_files,
                keep=path,
            )
        except OSError as e:
            self._logger.warning("log_cleanup_failed", bot=unit_name, error=str(e))
        else:
            for old in deleted:
                self._logger.debug("log_cleaned_up", bot=unit_name, path=str(old))

        return sink
