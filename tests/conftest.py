"""Shared test fixtures for bot-manager tests."""

import textwrap
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Literal

import anyio
import pytest
from rich.console import Console

from botmanager.config import (
    AdvancedConfig,
    Config,
    LoggingConfig,
    MonitoringConfig,
    RestartConfig,
)
from botmanager.supervisor import UnitEvent, UnitEventType, UnitStatus


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


class RecordingOutputSink:
    """Output sink that keeps everything it is given, for assertions."""

    def __init__(self) -> None:
        self.chunks: list[tuple[str, str, str]] = []
        self.events: list[UnitEvent] = []
        self.statuses: list[list[UnitStatus]] = []

    async def write_chunk(
        self,
        unit_name: str,
        pid: int,  # noqa: ARG002
        stream: Literal["stdout", "stderr"],
        text: str,
    ) -> None:
        self.chunks.append((unit_name, stream, text))

    async def write_event(self, event: UnitEvent) -> None:
        self.events.append(event)

    async def write_status(self, statuses: Sequence[UnitStatus]) -> None:
        self.statuses.append(list(statuses))

    def of_type(self, event_type: UnitEventType, name: str | None = None) -> list[UnitEvent]:
        return [
            e
            for e in self.events
            if e.event_type == event_type and (name is None or e.unit_name == name)
        ]

    def output(self, name: str, stream: str = "stdout") -> str:
        return "".join(t for n, s, t in self.chunks if n == name and s == stream)


@pytest.fixture
def recording_sink() -> RecordingOutputSink:
    return RecordingOutputSink()


def make_config(  # noqa: PLR0913
    *,
    max_attempts: int = 5,
    restart_delay: float = 0.0,
    autostart: bool = True,
    reset_counter_after_minutes: float = 30.0,
    log_normal_operations: bool = True,
    log_errors: bool = True,
    max_log_files: int = 10,
    date_organized: bool = True,
    status_interval: float = 0.0,
    shutdown_grace_period: float = 0.5,
    force_kill_timeout: float = 1.0,
    startup_delay: int = 0,
) -> Config:
    """Build a Config with timings suited to tests."""
    return Config(
        restart=RestartConfig(
            max_attempts=max_attempts,
            restart_delay=restart_delay,
            autostart=autostart,
            reset_counter_after_minutes=reset_counter_after_minutes,
        ),
        logging=LoggingConfig(
            log_normal_operations=log_normal_operations,
            log_errors=log_errors,
            max_log_files=max_log_files,
            date_organized=date_organized,
        ),
        monitoring=MonitoringConfig(status_interval=status_interval),
        advanced=AdvancedConfig(
            shutdown_grace_period=shutdown_grace_period,
            force_kill_timeout=force_kill_timeout,
            startup_delay=startup_delay,
        ),
    )


def write_bot(bots_dir: Path, name: str, script: str, *, manifest: str | None = None) -> Path:
    """Create a bot directory with a main.py script and a bot.toml manifest.

    Args:
        bots_dir: The bots/ directory.
        name: Bot name (also used as directory name).
        script: Python source of main.py.
        manifest: bot.toml content. Defaults to ``main = "main.py"``.

    Returns:
        Path to the created bot directory.
    """
    bot_dir = bots_dir / name
    bot_dir.mkdir(parents=True, exist_ok=True)
    (bot_dir / "main.py").write_text(textwrap.dedent(script))
    (bot_dir / "bot.toml").write_text(manifest if manifest is not None else 'main = "main.py"\n')
    return bot_dir


async def wait_until(
    predicate: Callable[[], bool],
    *,
    timeout: float = 10.0,
    interval: float = 0.02,
) -> None:
    """Poll until a condition holds, failing the test after the timeout."""
    with anyio.fail_after(timeout):
        while not predicate():
            await anyio.sleep(interval)
