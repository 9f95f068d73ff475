"""Output sink implementations for the supervisor system.

This module provides the console implementation of the OutputSink protocol
for displaying bot output, lifecycle events and status reports.
"""

from collections.abc import Sequence  # noqa: TC003 - Used in runtime type annotations
from typing import Literal, final

import pendulum
from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text

from ._models import UnitEvent, UnitEventType, UnitStatus


@final
class ConsoleOutputSink:
    """Output sink that writes to the terminal with formatted prefixes.

    Formats bot output as ``[time] [name] text`` with color coding:
    - stdout: Default styling
    - stderr: Red, with an ``ERROR:`` marker
    - Events: Special formatting based on event type
    """

    __slots__ = (
        "_console",
        "_event_styles",
        "_show_debug",
        "_stderr_style",
        "_stdout_style",
        "_timestamps",
    )

    def __init__(
        self,
        console: Console | None = None,
        *,
        timestamps: bool = True,
        show_debug: bool = False,
    ) -> None:
        """Initialize the output sink.

        Args:
            console: Rich Console instance for output. If None, creates a new one.
            timestamps: Prefix lines with the local time.
            show_debug: Also display counter reset events.
        """
        self._console = console or Console()
        self._timestamps = timestamps
        self._show_debug = show_debug
        self._stdout_style = Style()
        self._stderr_style = Style(color="red")
        self._event_styles: dict[UnitEventType, Style] = {
            UnitEventType.STARTED: Style(color="green", bold=True),
            UnitEventType.EXITED: Style(color="yellow"),
            UnitEventType.ERROR: Style(color="red", bold=True),
            UnitEventType.RESTARTING: Style(color="cyan"),
            UnitEventType.FAILED: Style(color="red", bold=True),
            UnitEventType.STOPPING: Style(color="magenta"),
            UnitEventType.KILLED: Style(color="red"),
            UnitEventType.COUNTER_RESET: Style(dim=True),
        }

    def _prefix(self, unit_name: str) -> Text:
        text = Text()
        if self._timestamps:
            now = pendulum.now().format("HH:mm:ss")
            _ = text.append(f"[{now}] ", style=Style(dim=True))
        _ = text.append(f"[{unit_name}]", style=Style(color="blue", bold=True))
        _ = text.append(" ")
        return text

    async def write_chunk(
        self,
        unit_name: str,
        pid: int,  # noqa: ARG002
        stream: Literal["stdout", "stderr"],
        text: str,
    ) -> None:
        """Write a trimmed chunk of bot output with prefix.

        Whitespace-only chunks are not displayed.

        Args:
            unit_name: Name of the bot that produced the output.
            pid: Process ID of the bot.
            stream: Which output stream the chunk came from.
            text: The chunk as read from the pipe.
        """
        clean = text.strip()
        if not clean:
            return

        line = self._prefix(unit_name)
        if stream == "stderr":
            _ = line.append("ERROR: ", style=Style(color="red", bold=True))
            _ = line.append(clean, style=self._stderr_style)
        else:
            _ = line.append(clean, style=self._stdout_style)

        self._console.print(line)

    async def write_event(self, event: UnitEvent) -> None:
        """Write a bot lifecycle event with special formatting.

        Args:
            event: The lifecycle event to record.
        """
        if event.event_type == UnitEventType.COUNTER_RESET and not self._show_debug:
            return

        style = self._event_styles.get(event.event_type, Style())

        text = self._prefix(event.unit_name)
        _ = text.append(event.event_type.value.upper(), style=style)

        if event.pid is not None:
            _ = text.append(f" (pid={event.pid})", style=Style(dim=True))

        if event.event_type in (UnitEventType.EXITED, UnitEventType.ERROR):
            details = f" code={event.exit_code} signal={event.signal}"
            _ = text.append(details, style=Style(dim=True))

        if event.attempt is not None:
            attempt = (
                f"{event.attempt}/{event.max_attempts}"
                if event.max_attempts is not None
                else str(event.attempt)
            )
            _ = text.append(f" attempt {attempt}", style=Style(dim=True))

        if event.message:
            _ = text.append(f" - {event.message}", style=style)

        self._console.print(text)

    async def write_status(self, statuses: Sequence[UnitStatus]) -> None:
        """Write a table of the live bots.

        Args:
            statuses: One row per live bot.
        """
        if not statuses:
            self._console.print(Text("No bots currently running.", style=Style(dim=True)))
            return

        table = Table(title="Bot Manager Status")
        table.add_column("Bot", style="blue bold")
        table.add_column("State")
        table.add_column("Uptime", justify="right")
        table.add_column("PID", justify="right")
        table.add_column("Restarts", justify="right")

        for status in statuses:
            table.add_row(
                status.name,
                status.state.value,
                status.uptime,
                str(status.pid) if status.pid is not None else "-",
                str(status.restart_attempts),
            )

        self._console.print(table)
