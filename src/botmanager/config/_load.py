"""Configuration loading with fallback to defaults."""

from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations

from botmanager.exceptions import ConfigError

from ._loader import read_toml_file
from ._models import Config
from ._validation import ValidationIssue, build_config


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    """Result of loading the configuration file.

    Attributes:
        config: The effective configuration.
        path: The configuration file that was looked up.
        found: Whether the file existed.
        issues: Per-field validation issues (fields that fell back to defaults
            and ignored unknown keys).
        error: Why the whole file was rejected, if it was.
    """

    config: Config
    path: Path
    found: bool
    issues: tuple[ValidationIssue, ...] = field(default=())
    error: str | None = None

    @property
    def used_defaults(self) -> bool:
        """Whether the configuration is entirely the built-in defaults."""
        return not self.found or self.error is not None


def load_config(path: Path) -> tuple[Config, list[ValidationIssue]]:
    """Load and validate a configuration file.

    Args:
        path: Path to the TOML configuration file.

    Returns:
        Tuple of (Config, validation issues).

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file cannot be parsed.
    """
    return build_config(read_toml_file(path))


def safe_load_config(path: Path) -> LoadedConfig:
    """Load configuration, never failing.

    A missing file yields the defaults. A malformed or unreadable file yields
    the defaults together with the error message, so the caller can warn.

    Args:
        path: Path to the TOML configuration file.

    Returns:
        The loaded configuration and any problems found.
    """
    if not path.exists():
        return LoadedConfig(config=Config(), path=path, found=False)

    try:
        config, issues = load_config(path)
    except ConfigError as e:
        return LoadedConfig(config=Config(), path=path, found=True, error=str(e))
    except OSError as e:
        error_msg = f"Failed to read config: {e}"
        return LoadedConfig(config=Config(), path=path, found=True, error=error_msg)

    return LoadedConfig(config=config, path=path, found=True, issues=tuple(issues))
