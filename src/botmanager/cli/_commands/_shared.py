# pyright: reportExplicitAny=false
"""Exit codes, output formatters and error reporting shared by the commands."""

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

import orjson
import tomli_w

if TYPE_CHECKING:
    from rich.console import Console

FormattableData = dict[str, Any]


class ExitCode(IntEnum):
    """Exit statuses of the bot-manager commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Render data as JSON, indented unless ``indent`` is False."""
    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options).decode("utf-8")


def format_toml(data: FormattableData) -> str:
    """Render a table of tables as TOML."""
    return tomli_w.dumps(data)


def get_error_console() -> "Console":  # noqa: UP037
    """Console for warnings and errors, writing to stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode,
    *,
    console: "Console | None" = None,  # noqa: UP037
) -> Never:
    """Report an error on stderr and exit.

    Args:
        message: What went wrong.
        code: The exit status.
        console: Console to print to. Defaults to a new stderr console.

    Raises:
        SystemExit: Always.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)
