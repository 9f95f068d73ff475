# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for dataclass field
"""CLI context for global state management.

This module provides context management for the global CLI options and the
loaded configuration. The CLIContext is set once at CLI startup and made
available to all commands via contextvars.
"""

import contextvars
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from botmanager.config import Config, LoadedConfig, safe_load_config
from botmanager.utils import get_bots_dir, get_config_file, get_logs_dir

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


class OutputFormat(StrEnum):
    """Supported output formats for commands."""

    TOML = "toml"
    JSON = "json"
    TEXT = "text"


# Context variable for CLIContext
_current_cli_context: contextvars.ContextVar[Optional["CLIContext"]] = (
    contextvars.ContextVar("cli_context", default=None)
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context with configuration and options.

    Attributes:
        loaded: Result of loading botmanager.toml, including any issues.
        base_dir: Directory holding bots/, logs/ and botmanager.toml.
        bots_dir: Directory scanned for bots.
        logs_dir: Directory for per-bot logs and the supervisor log.
        verbose: Enable verbose output with additional details.
        logger: Structured logger writing to the supervisor log file.
    """

    loaded: LoadedConfig = field(repr=False)
    base_dir: Path
    bots_dir: Path
    logs_dir: Path
    verbose: bool = False
    logger: "FilteringBoundLogger | None" = field(default=None, repr=False)  # noqa: UP037

    @property
    def config(self) -> Config:
        """The effective configuration."""
        return self.loaded.config

    @classmethod
    def from_base_dir(cls, base_dir: Path, *, verbose: bool = False) -> "CLIContext":  # noqa: UP037
        """Build a context with the default layout under a base directory.

        Args:
            base_dir: Directory holding bots/, logs/ and botmanager.toml.
            verbose: Enable verbose output.

        Returns:
            A CLIContext without a logger.
        """
        return cls(
            loaded=safe_load_config(get_config_file(base_dir)),
            base_dir=base_dir,
            bots_dir=get_bots_dir(base_dir),
            logs_dir=get_logs_dir(base_dir),
            verbose=verbose,
        )

    @classmethod
    def get_current(cls) -> "CLIContext":  # noqa: UP037
        """Get current active CLIContext, or create a default if not set.

        Returns:
            The currently active CLIContext, or one for the current directory.
        """
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx

        return cls.from_base_dir(Path.cwd())

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:  # noqa: UP037
        """Set the current active CLIContext.

        Args:
            ctx: The CLIContext to set as current.
        """
        _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Reset to default context.

        This is primarily useful for testing to ensure a clean state between tests.
        """
        _current_cli_context.set(None)
