"""Data models for the supervisor system.

This module defines the core data types for bot management:
- Unit: A discovered, runnable bot
- UnitState: Lifecycle states for supervised bots
- UnitEventType / UnitEvent: Lifecycle event records
- RestartDecision: Outcome of classifying a bot's exit
- RejectionReason / RejectedEntry / DiscoveryResult: Discovery report
- UnitStatus: Status report row for a live bot
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations

ERROR_SIGNAL = "ERROR"
"""Synthetic signal name reported when a bot's process could not be run."""


class UnitState(StrEnum):
    """Bot lifecycle states.

    - STOPPED: Not running (never started, exited cleanly, or stopped on request)
    - RUNNING: A live process exists
    - RESTART_PENDING: Exited uncleanly, waiting for the restart delay
    - STOPPING: Termination requested, waiting for the process to exit
    - FAILED: Restart ceiling reached; stays down until started manually
    """

    STOPPED = "stopped"
    RUNNING = "running"
    RESTART_PENDING = "restart_pending"
    STOPPING = "stopping"
    FAILED = "failed"


class UnitEventType(StrEnum):
    """Types of bot lifecycle events."""

    STARTED = "started"
    EXITED = "exited"
    ERROR = "error"
    RESTARTING = "restarting"
    FAILED = "failed"
    STOPPING = "stopping"
    KILLED = "killed"
    COUNTER_RESET = "counter_reset"


class RestartDecision(StrEnum):
    """What the supervisor decided after a bot's process ended."""

    RESTART = "restart"
    GIVE_UP = "give_up"
    CLEAN_EXIT = "clean_exit"
    STOPPED = "stopped"
    DRAINING = "draining"


class RejectionReason(StrEnum):
    """Why a bots/ directory entry is not a runnable bot."""

    NOT_A_DIRECTORY = "not-a-directory"
    MANIFEST_MISSING = "manifest-missing"
    MANIFEST_UNPARSEABLE = "manifest-unparseable"
    MANIFEST_MISSING_ENTRY_POINT = "manifest-missing-entry-point"
    READ_ERROR = "read-error"


@dataclass(frozen=True, slots=True)
class Unit:
    """A discovered bot.

    Attributes:
        name: Unique identifier, the bot's directory name.
        path: The bot's directory, used as the working directory.
        command: Command and arguments that start the bot.
        env: Additional environment variables from the manifest.
    """

    name: str
    path: Path
    command: tuple[str, ...]
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RejectedEntry:
    """A bots/ directory entry that discovery skipped.

    Attributes:
        name: The entry's file or directory name.
        reason: Why it was rejected.
        detail: Extra context, such as a parser error message.
    """

    name: str
    reason: RejectionReason
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Outcome of scanning the bots/ directory.

    Attributes:
        units: Valid bots in directory listing order.
        rejected: Skipped entries in directory listing order.
        created: True if the bots/ directory did not exist and was created.
    """

    units: tuple[Unit, ...] = ()
    rejected: tuple[RejectedEntry, ...] = ()
    created: bool = False

    @property
    def names(self) -> list[str]:
        """Names of the valid bots, in order."""
        return [unit.name for unit in self.units]


@dataclass(frozen=True, slots=True)
class UnitEvent:
    """Immutable bot lifecycle event.

    Attributes:
        unit_name: Name of the bot that generated the event.
        event_type: Type of lifecycle event.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        exit_code: Exit code if the process terminated normally.
        signal: Signal name if the process was terminated by a signal,
            or "ERROR" for a process-level error.
        attempt: Restart attempt number for RESTARTING events.
        max_attempts: Restart ceiling, or None when unlimited.
        message: Optional human-readable message.
    """

    unit_name: str
    event_type: UnitEventType
    timestamp: str
    pid: int | None = None
    exit_code: int | None = None
    signal: str | None = None
    attempt: int | None = None
    max_attempts: int | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class UnitStatus:
    """Status report row for one bot.

    Attributes:
        name: Bot name.
        state: Current lifecycle state.
        pid: Process ID if a process is live.
        uptime_seconds: Seconds since the live process started.
        restart_attempts: Current value of the restart attempt counter.
    """

    name: str
    state: UnitState
    pid: int | None = None
    uptime_seconds: int | None = None
    restart_attempts: int = 0

    @property
    def uptime(self) -> str:
        """Uptime formatted as ``1h 2m 3s``."""
        return format_uptime(self.uptime_seconds or 0)


def format_uptime(seconds: int) -> str:
    """Format a duration in seconds as hours, minutes and seconds.

    Args:
        seconds: Duration in whole seconds.

    Returns:
        The duration formatted as ``<h>h <m>m <s>s``.
    """
    hours, remainder = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s"
