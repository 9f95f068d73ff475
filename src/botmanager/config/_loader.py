"""TOML configuration file loading."""

import tomllib
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any

from botmanager.exceptions import ConfigLoadError

CONFIG_FILENAME = "botmanager.toml"


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed TOML content as dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file cannot be parsed.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file: {e}"
        raise ConfigLoadError(
            msg,
            path=path,
            line=getattr(e, "lineno", None),
            column=getattr(e, "colno", None),
        ) from e
    except UnicodeDecodeError as e:
        msg = f"Failed to decode TOML file: {e}"
        raise ConfigLoadError(msg, path=path) from e
