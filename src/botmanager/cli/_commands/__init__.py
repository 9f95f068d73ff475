"""bot-manager CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._config import app as config_app
from ._context import CLIContext, OutputFormat
from ._discover import app as discover_app
from ._run import app as run_app
from ._shared import (
    ExitCode,
    FormattableData,
    exit_with_error,
    format_json,
    format_toml,
    get_error_console,
)

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "CLIContext",
    "ExitCode",
    "FormattableData",
    "OutputFormat",
    "config_app",
    "discover_app",
    "exit_with_error",
    "format_json",
    "format_toml",
    "get_error_console",
    "register_commands",
    "run_app",
]


def register_commands(app: "App") -> None:  # noqa: UP037
    app.command(run_app)
    app.command(discover_app)
    app.command(config_app)
