from collections.abc import Callable

import pytest
from rich.console import Console

from botmanager.cli import create_app


@pytest.fixture
def botmanager_cli(console: Console) -> Callable[..., int]:
    """Create CLI app for testing that returns the exit code.

    Arguments go through the meta app, so global options such as
    ``--base-dir`` are accepted before the command name.
    """

    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        """Run CLI app and return exit code (0 if no SystemExit)."""

        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
