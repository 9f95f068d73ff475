# pyright: reportUnusedCallResult=false
"""Discover command for listing the bots that would be supervised."""

from typing import Annotated

from cyclopts import App, Parameter

from botmanager.supervisor import DiscoveryResult, discover_units

from ._context import CLIContext, OutputFormat
from ._shared import ExitCode, FormattableData, exit_with_error, format_json

app = App(
    name="discover",
    help="List the bots found in the bots directory",
    help_on_error=True,
)


def _result_to_dict(result: DiscoveryResult, ctx: CLIContext) -> FormattableData:
    return {
        "bots_dir": str(ctx.bots_dir),
        "created": result.created,
        "bots": [
            {
                "name": unit.name,
                "path": str(unit.path),
                "command": list(unit.command),
                "env": unit.env,
            }
            for unit in result.units
        ],
        "rejected": [
            {
                "name": entry.name,
                "reason": entry.reason.value,
                "detail": entry.detail,
            }
            for entry in result.rejected
        ],
    }


def _format_text(result: DiscoveryResult, ctx: CLIContext) -> str:
    lines: list[str] = []

    if result.created:
        lines.append(f"Created bots directory: {ctx.bots_dir}")

    if not result.units:
        lines.append(f"No valid bots found in {ctx.bots_dir}")
    else:
        lines.append(f"Found {len(result.units)} bot(s) in {ctx.bots_dir}:")
        for unit in result.units:
            line = f"  {unit.name}: {' '.join(unit.command)}"
            if ctx.verbose and unit.env:
                env = ", ".join(f"{key}={value}" for key, value in unit.env.items())
                line += f" [{env}]"
            lines.append(line)

    if result.rejected:
        lines.append(f"Skipped {len(result.rejected)} entr(ies):")
        for entry in result.rejected:
            line = f"  {entry.name} ({entry.reason.value})"
            if entry.detail:
                line += f": {entry.detail}"
            lines.append(line)

    return "\n".join(lines)


@app.default
def discover(
    *,
    format: Annotated[  # noqa: A002
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format (text or json)"),
    ] = OutputFormat.TEXT,
) -> None:
    """List the bots that would be started and the entries that were skipped.

    A missing bots directory is created.
    """
    ctx = CLIContext.get_current()
    try:
        result = discover_units(ctx.bots_dir, ctx.logger)
    except OSError as e:
        exit_with_error(f"Cannot read bots directory: {e}", ExitCode.IO_ERROR)

    if format == OutputFormat.JSON:
        print(format_json(_result_to_dict(result, ctx)))
    else:
        print(_format_text(result, ctx))
