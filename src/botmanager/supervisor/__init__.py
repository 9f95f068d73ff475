"""Supervisor package for running and restarting bots.

This package discovers bots under a bots/ directory and runs each one as a
child process with structured concurrency, bounded automatic restarts,
per-run log files and a control API.

Key Components:
    - discover_units: Scans bots/ for runnable bots
    - Unit: A discovered bot
    - UnitState: Lifecycle state enumeration
    - UnitStatus: Status report row
    - UnitEvent: Lifecycle event records
    - RestartPolicy: Per-bot restart attempt counter
    - OutputSink: Protocol for output consumption
    - ConsoleOutputSink: Console output implementation
    - FileLogSinkProvider: Per-run log files with retention
    - Supervisor: Multi-bot coordinator
    - ShutdownCoordinator: One-shot graceful shutdown
    - create_control_router: FastAPI endpoint factory

Example:
    >>> from botmanager.supervisor import Supervisor, discover_units
    >>> result = discover_units(Path("bots"))
    >>> supervisor = Supervisor(result.units, Config())
    >>> await supervisor.run()  # Blocks until shutdown
"""

from ._api import create_control_router
from ._discovery import MANIFEST_FILENAME, discover_units, inspect_entry, resolve_command
from ._logsink import (
    FileLogSink,
    FileLogSinkProvider,
    build_log_path,
    cleanup_old_logs,
    format_error_marker,
    format_exit_marker,
    format_start_marker,
    unique_log_path,
)
from ._models import (
    ERROR_SIGNAL,
    DiscoveryResult,
    RejectedEntry,
    RejectionReason,
    RestartDecision,
    Unit,
    UnitEvent,
    UnitEventType,
    UnitState,
    UnitStatus,
    format_uptime,
)
from ._output import ConsoleOutputSink
from ._policy import RestartPolicy
from ._protocol import LogSink, LogSinkProvider, OutputSink
from ._shutdown import ShutdownCoordinator
from ._supervisor import LiveProcess, Supervisor, should_restart, split_returncode

__all__ = [
    "ERROR_SIGNAL",
    "MANIFEST_FILENAME",
    "ConsoleOutputSink",
    "DiscoveryResult",
    "FileLogSink",
    "FileLogSinkProvider",
    "LiveProcess",
    "LogSink",
    "LogSinkProvider",
    "OutputSink",
    "RejectedEntry",
    "RejectionReason",
    "RestartDecision",
    "RestartPolicy",
    "ShutdownCoordinator",
    "Supervisor",
    "Unit",
    "UnitEvent",
    "UnitEventType",
    "UnitState",
    "UnitStatus",
    "build_log_path",
    "cleanup_old_logs",
    "create_control_router",
    "discover_units",
    "format_error_marker",
    "format_exit_marker",
    "format_start_marker",
    "format_uptime",
    "inspect_entry",
    "resolve_command",
    "should_restart",
    "split_returncode",
    "unique_log_path",
]
