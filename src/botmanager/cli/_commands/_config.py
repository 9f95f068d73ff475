# pyright: reportUnusedCallResult=false
"""Config command for viewing the effective bot-manager configuration."""

from typing import Annotated

from cyclopts import App, Parameter

from ._context import CLIContext, OutputFormat
from ._shared import ExitCode, format_json, format_toml, get_error_console

app = App(
    name="config",
    help="Show the effective configuration and any problems in botmanager.toml",
    help_on_error=True,
)


@app.default
def config(
    *,
    format: Annotated[  # noqa: A002
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format (toml or json)"),
    ] = OutputFormat.TOML,
    strict: Annotated[
        bool,
        Parameter(help="Exit with an error if the file has any problems"),
    ] = False,
) -> None:
    """Print the configuration in effect after defaults and fallbacks.

    Problems are reported on stderr. Invalid values fall back to their
    defaults individually; an unparseable file falls back entirely.
    """
    ctx = CLIContext.get_current()
    loaded = ctx.loaded
    data = loaded.config.to_dict()

    if format == OutputFormat.JSON:
        print(format_json(data))
    else:
        print(format_toml(data), end="")

    error_console = get_error_console()

    if not loaded.found:
        error_console.print(f"[dim]No config file at {loaded.path}, using defaults[/dim]")

    if loaded.error is not None:
        error_console.print(
            f"[yellow]Warning:[/yellow] {loaded.error}; using default configuration"
        )
        if strict:
            raise SystemExit(ExitCode.LOAD_ERROR)

    for issue in loaded.issues:
        label = "[red]Error:[/red]" if issue.severity == "error" else "[yellow]Warning:[/yellow]"
        error_console.print(f"{label} {issue}")

    if strict and loaded.issues:
        raise SystemExit(ExitCode.VALIDATION_ERROR)
