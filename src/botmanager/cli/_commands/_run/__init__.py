# pyright: reportUnusedCallResult=false
"""Run command - supervises all discovered bots."""

from typing import Annotated

import anyio
from cyclopts import App, Parameter

from botmanager.cli._commands._context import CLIContext
from botmanager.cli._commands._shared import ExitCode, exit_with_error, get_error_console

app = App(
    name="run",
    help="Start all bots and keep them running until interrupted",
    help_on_error=True,
)

MAX_PORT = 65535


def _report_config_problems(ctx: CLIContext) -> None:
    loaded = ctx.loaded
    error_console = get_error_console()

    if loaded.error is not None:
        error_console.print(
            f"[yellow]Warning:[/yellow] {loaded.error}; using default configuration"
        )
        if ctx.logger is not None:
            ctx.logger.warning("config_load_failed", path=str(loaded.path), error=loaded.error)

    for issue in loaded.issues:
        error_console.print(f"[yellow]Warning:[/yellow] {issue}")
        if ctx.logger is not None:
            ctx.logger.warning(
                "config_issue",
                key=issue.key,
                message=issue.message,
                severity=issue.severity,
            )


@app.default
def run(
    *,
    control_port: Annotated[
        int,
        Parameter(help="Port for the supervisor control API. 0 disables it."),
    ] = 0,
) -> None:
    """Discover the bots and supervise them.

    Bots are started in name order, restarted when they crash and stopped
    gracefully on SIGINT or SIGTERM. The exit status is the supervisor's.
    """
    from ._runner import run_supervisor

    if not 0 <= control_port <= MAX_PORT:
        exit_with_error(
            f"Invalid control port {control_port}", ExitCode.VALIDATION_ERROR
        )

    ctx = CLIContext.get_current()
    _report_config_problems(ctx)

    exit_code = anyio.run(run_supervisor, ctx, control_port)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    app()
