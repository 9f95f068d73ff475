"""bot-manager exceptions."""

from pathlib import Path  # noqa: TC003 - Used in runtime type annotations


class BotManagerError(Exception):
    """Base exception for bot-manager errors."""


class ConfigError(BotManagerError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


# =============================================================================
# Supervisor Exceptions
# =============================================================================


class UnitError(BotManagerError):
    """Base exception for errors concerning a single supervised bot.

    Attributes:
        unit_name: Name of the bot the error refers to.
    """

    def __init__(self, message: str, *, unit_name: str) -> None:
        """Initialize with error message and bot context.

        Args:
            message: Human-readable error message.
            unit_name: Name of the bot the error refers to.
        """
        super().__init__(message)
        self.unit_name: str = unit_name


class UnitNotFoundError(UnitError, KeyError):
    """Raised when a bot name is not among the discovered bots."""


class UnitAlreadyRunningError(UnitError):
    """Raised when starting a bot that already has a live process."""


class SupervisorNotRunningError(BotManagerError):
    """Raised when a lifecycle operation needs the supervisor's event loop."""
