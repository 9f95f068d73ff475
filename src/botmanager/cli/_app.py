"""The command-line interface for bot-manager."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from botmanager.config import safe_load_config
from botmanager.utils import (
    create_supervisor_logger,
    get_base_dir,
    get_bots_dir,
    get_config_file,
    get_logs_dir,
    get_supervisor_log_file,
)

from ._commands import CLIContext, ExitCode, exit_with_error, register_commands

APP_HELP = "Run a pool of bots as supervised child processes."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Create the CLI application.

    Args:
        console: Console for help and cyclopts output.
        error_console: Console for cyclopts error messages.
        exit_on_error: Exit on parse errors instead of raising.

    Returns:
        The cyclopts App with global options and all commands registered.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="botmanager",
        help=APP_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        base_dir: Annotated[
            Path | None,
            Parameter(
                name="--base-dir",
                help="Directory holding bots/, logs/ and botmanager.toml",
            ),
        ] = None,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        bots_dir: Annotated[
            Path | None, Parameter(name="--bots-dir", help="Directory to scan for bots")
        ] = None,
        logs_dir: Annotated[
            Path | None, Parameter(name="--logs-dir", help="Directory for log files")
        ] = None,
        verbose: Annotated[bool, Parameter(help="Enable verbose output")] = False,
    ) -> None:
        """Launch bot-manager with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            base_dir: Directory holding bots/, logs/ and botmanager.toml.
                Defaults to BOTMANAGER_HOME or the current directory.
            config: Explicit path to config file.
            bots_dir: Directory to scan for bots.
            logs_dir: Directory for per-bot logs and the supervisor log.
            verbose: Enable verbose output with additional details.
        """
        resolved_base = base_dir or get_base_dir()
        resolved_logs = logs_dir or get_logs_dir(resolved_base)

        # An explicit config path must exist; the default one is optional
        if config is not None and not config.exists():
            exit_with_error(f"Config file not found: {config}", ExitCode.NOT_FOUND)

        loaded = safe_load_config(config or get_config_file(resolved_base))

        # Create supervisor logger from config settings
        logger = create_supervisor_logger(
            get_supervisor_log_file(resolved_logs),
            level=loaded.config.logging.log_level.value,
            debug=loaded.config.debug,
        )

        # Create and set CLI context
        ctx = CLIContext(
            loaded=loaded,
            base_dir=resolved_base,
            bots_dir=bots_dir or get_bots_dir(resolved_base),
            logs_dir=resolved_logs,
            verbose=verbose,
            logger=logger,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


app = create_app()


def main() -> None:
    """Default entrypoint for the `botmanager` CLI."""
    app.meta()


if __name__ == "__main__":
    main()
