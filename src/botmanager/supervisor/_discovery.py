"""Discovery of runnable bots in the bots/ directory.

Each subdirectory of the bots/ directory is a candidate. A candidate is a
bot when it contains a ``bot.toml`` manifest that parses and declares either
a ``main`` script or a ``[scripts] start`` command::

    main = "bot.py"

    [scripts]
    start = "python -m mybot --verbose"

    [env]
    MYBOT_TOKEN_FILE = "token.txt"
"""

import shlex
import sys
import tomllib
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import TYPE_CHECKING, Any

from botmanager.utils import create_null_logger

from ._models import DiscoveryResult, RejectedEntry, RejectionReason, Unit

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

MANIFEST_FILENAME = "bot.toml"


def resolve_command(manifest: dict[str, Any]) -> tuple[str, ...] | None:  # pyright: ignore[reportExplicitAny]
    """Resolve the command that starts a bot from its manifest.

    A ``main`` script runs under the supervisor's own interpreter. Otherwise
    the ``[scripts] start`` command line is split shell-style.

    Args:
        manifest: Parsed manifest content.

    Returns:
        The command as a tuple, or None if the manifest declares no entry point.
    """
    main = manifest.get("main")
    if isinstance(main, str) and main.strip():
        return (sys.executable, main.strip())

    scripts = manifest.get("scripts")
    if isinstance(scripts, dict):
        start = scripts.get("start")  # pyright: ignore[reportUnknownMemberType,reportUnknownVariableType]
        if isinstance(start, str) and start.strip():
            try:
                argv = shlex.split(start)
            except ValueError:
                return None
            return tuple(argv) if argv else None

    return None


def _manifest_env(manifest: dict[str, Any]) -> dict[str, str]:  # pyright: ignore[reportExplicitAny]
    env = manifest.get("env")
    if not isinstance(env, dict):
        return {}
    return {str(k): v for k, v in env.items() if isinstance(v, str)}  # pyright: ignore[reportUnknownVariableType,reportUnknownArgumentType]


def inspect_entry(path: Path) -> Unit | RejectedEntry:
    """Check whether a bots/ directory entry is a runnable bot.

    Args:
        path: The directory entry to check.

    Returns:
        The Unit if the entry is valid, otherwise the RejectedEntry
        explaining the first check that failed.

    Raises:
        OSError: If the entry or its manifest cannot be read.
    """
    name = path.name

    if not path.is_dir():
        return RejectedEntry(name, RejectionReason.NOT_A_DIRECTORY)

    manifest_path = path / MANIFEST_FILENAME
    if not manifest_path.is_file():
        return RejectedEntry(name, RejectionReason.MANIFEST_MISSING)

    try:
        with manifest_path.open("rb") as f:
            manifest = tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        return RejectedEntry(name, RejectionReason.MANIFEST_UNPARSEABLE, str(e))

    command = resolve_command(manifest)
    if command is None:
        return RejectedEntry(
            name,
            RejectionReason.MANIFEST_MISSING_ENTRY_POINT,
            "no 'main' field or [scripts] 'start' command",
        )

    return Unit(name=name, path=path, command=command, env=_manifest_env(manifest))


def discover_units(
    root: Path,
    logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
) -> DiscoveryResult:
    """Scan the bots/ directory for runnable bots.

    Entries are examined in name order. Entries that cannot be read are
    rejected with READ_ERROR rather than aborting the scan. If the directory
    does not exist it is created and the result is empty.

    Args:
        root: The bots/ directory.
        logger: Diagnostic logger for per-entry results.

    Returns:
        The valid bots and the rejected entries.
    """
    log = logger if logger is not None else create_null_logger()

    if not root.exists():
        root.mkdir(parents=True, exist_ok=True)
        log.info("bots_dir_created", path=str(root))
        return DiscoveryResult(created=True)

    units: list[Unit] = []
    rejected: list[RejectedEntry] = []

    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        try:
            outcome = inspect_entry(entry)
        except OSError as e:
            outcome = RejectedEntry(entry.name, RejectionReason.READ_ERROR, str(e))

        if isinstance(outcome, Unit):
            units.append(outcome)
            log.debug("bot_discovered", bot=outcome.name, command=list(outcome.command))
        else:
            rejected.append(outcome)
            log.warning(
                "bot_rejected",
                entry=outcome.name,
                reason=outcome.reason.value,
                detail=outcome.detail,
            )

    log.info("discovery_finished", valid=len(units), skipped=len(rejected))
    return DiscoveryResult(units=tuple(units), rejected=tuple(rejected))
