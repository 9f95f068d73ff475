"""Async runner for the run command.

This module provides the async entry point that discovers the bots and runs
the supervisor, the signal handler and the optional control API together
using anyio.
"""

from typing import TYPE_CHECKING

import anyio
from rich.console import Console

from botmanager.cli._commands._shared import ExitCode, exit_with_error
from botmanager.supervisor import (
    ConsoleOutputSink,
    FileLogSinkProvider,
    ShutdownCoordinator,
    Supervisor,
    discover_units,
)
from botmanager.utils import create_null_logger

from ._app import create_control_app, create_control_server

if TYPE_CHECKING:
    from botmanager.cli._commands._context import CLIContext


async def run_supervisor(
    ctx: "CLIContext",  # noqa: UP037
    control_port: int = 0,
    console: Console | None = None,
) -> int:
    """Discover the bots and supervise them until shutdown.

    Args:
        ctx: The CLI context with configuration and directories.
        control_port: Port for the control API server, or 0 for none.
        console: Console for bot output. If None, creates a new one.

    Returns:
        The supervisor's exit status.
    """
    config = ctx.config
    logger = ctx.logger if ctx.logger is not None else create_null_logger()
    console = console or Console()

    try:
        result = discover_units(ctx.bots_dir, logger)
    except OSError as e:
        exit_with_error(f"Cannot read bots directory: {e}", ExitCode.IO_ERROR)

    if result.created:
        console.print(f"Created bots directory: {ctx.bots_dir}")
    for entry in result.rejected:
        console.print(f"[yellow]Skipping {entry.name}:[/yellow] {entry.reason.value}")

    if not result.units:
        console.print(f"No valid bots found in {ctx.bots_dir}")
        return 0

    console.print(f"Found {len(result.units)} bot(s): {', '.join(result.names)}")
    if not config.restart.autostart:
        console.print("[dim]Autostart is disabled[/dim]")

    output_sink = ConsoleOutputSink(
        console,
        timestamps=config.logging.console_timestamps,
        show_debug=config.debug or ctx.verbose,
    )
    log_sinks = FileLogSinkProvider(ctx.logs_dir, config.logging, logger)
    supervisor = Supervisor(
        result.units,
        config,
        output_sink=output_sink,
        log_sinks=log_sinks,
        logger=logger,
    )
    coordinator = ShutdownCoordinator(supervisor)

    control_server = None
    if control_port > 0:
        control_app = create_control_app(supervisor, coordinator)
        control_server = create_control_server(control_app, control_port)
        console.print(f"Control API on http://127.0.0.1:{control_port}/supervisor")

    async with anyio.create_task_group() as tg:
        if control_server is not None:
            # Start the control server first so it's ready before bots start
            tg.start_soon(control_server.serve)
            await anyio.sleep(0.1)

        async with anyio.create_task_group() as signal_tg:
            signal_tg.start_soon(coordinator.handle_signals)

            # Run the supervisor (blocks until shutdown)
            exit_code = await supervisor.run()

            signal_tg.cancel_scope.cancel()

        # Supervisor has shut down, stop the control server
        if control_server is not None:
            control_server.should_exit = True

    console.print("Bot manager stopped.")
    return exit_code
