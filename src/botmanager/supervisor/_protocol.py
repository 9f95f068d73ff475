"""Protocol definitions for the supervisor system.

This module defines the interfaces that decouple the supervisor core from
presentation and log file handling:
- OutputSink: Protocol for consuming bot output, events and status reports
- LogSink: Protocol for one run's log destination
- LogSinkProvider: Protocol for creating log destinations
"""

from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pendulum import DateTime

    from ._models import UnitEvent, UnitStatus


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming bot output chunks and lifecycle events.

    OutputSinks receive output from supervised bots and can format, store,
    or display it. The protocol is async to support non-blocking I/O
    operations like writing to files or updating UIs.
    """

    async def write_chunk(
        self,
        unit_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        text: str,
    ) -> None:
        """Write a chunk of bot output.

        Args:
            unit_name: Name of the bot that produced the output.
            pid: Process ID of the bot.
            stream: Which output stream the chunk came from.
            text: The chunk as read from the pipe.
        """
        ...

    async def write_event(self, event: "UnitEvent") -> None:  # noqa: UP037
        """Write a bot lifecycle event.

        Args:
            event: The lifecycle event to record.
        """
        ...

    async def write_status(self, statuses: "Sequence[UnitStatus]") -> None:  # noqa: UP037
        """Write a status report of the live bots.

        Args:
            statuses: One row per live bot; empty when none is running.
        """
        ...


@runtime_checkable
class LogSink(Protocol):
    """Append-only destination for one run of a bot."""

    def write(self, text: str) -> None:
        """Append text."""
        ...

    def close(self) -> None:
        """Release the destination. Later writes are dropped."""
        ...


@runtime_checkable
class LogSinkProvider(Protocol):
    """Protocol for creating per-run log destinations."""

    def open(self, unit_name: str, started_at: "DateTime") -> LogSink | None:  # noqa: UP037
        """Open the destination for a new run of a bot.

        Args:
            unit_name: The bot name.
            started_at: Local start time of the run.

        Returns:
            The destination, or None when file logging is disabled.
        """
        ...
