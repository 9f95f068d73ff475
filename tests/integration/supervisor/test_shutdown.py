import sys
from pathlib import Path

import anyio
import pytest

from botmanager.config import Config
from botmanager.exceptions import SupervisorNotRunningError
from botmanager.supervisor import (
    ShutdownCoordinator,
    Supervisor,
    UnitEventType,
    UnitState,
    discover_units,
)
from tests.conftest import RecordingOutputSink, make_config, wait_until, write_bot
from tests.integration.conftest import (
    CRASHING_BOT,
    LONG_RUNNING_BOT,
    TERM_IGNORING_BOT,
    supervising,
)

pytestmark = pytest.mark.anyio

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")


def _supervisor(tmp_path: Path, config: Config, sink: RecordingOutputSink) -> Supervisor:
    result = discover_units(tmp_path / "bots")
    return Supervisor(result.units, config, output_sink=sink)


@posix_only
class TestStop:
    async def test_stop_terminates_and_does_not_restart(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(force_kill_timeout=2.0), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: "ready" in recording_sink.output("alpha"))

            assert await supervisor.stop("alpha") is True
            assert supervisor.state("alpha") == UnitState.STOPPING

            await wait_until(lambda: supervisor.state("alpha") == UnitState.STOPPED)
            await anyio.sleep(0.2)

        exited = recording_sink.of_type(UnitEventType.EXITED)
        assert [(e.exit_code, e.signal) for e in exited] == [(None, "SIGTERM")]
        assert recording_sink.of_type(UnitEventType.RESTARTING) == []
        assert recording_sink.of_type(UnitEventType.KILLED) == []

    async def test_stop_force_kills_stubborn_bot(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", TERM_IGNORING_BOT)
        supervisor = _supervisor(tmp_path, make_config(force_kill_timeout=0.5), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: "ready" in recording_sink.output("alpha"))

            _ = await supervisor.stop("alpha")

            await wait_until(lambda: supervisor.state("alpha") == UnitState.STOPPED)

        assert len(recording_sink.of_type(UnitEventType.KILLED)) == 1
        exited = recording_sink.of_type(UnitEventType.EXITED)
        assert [(e.exit_code, e.signal) for e in exited] == [(None, "SIGKILL")]
        assert recording_sink.of_type(UnitEventType.RESTARTING) == []

    async def test_stop_of_stopped_bot_is_a_no_op(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(autostart=False), recording_sink)

        async with supervising(supervisor):
            assert await supervisor.stop("alpha") is False


class TestShutdownCoordinator:
    async def test_shutdown_stops_all_bots(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        for name in ("alpha", "bravo"):
            _ = write_bot(tmp_path / "bots", name, LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(), recording_sink)
        coordinator = ShutdownCoordinator(supervisor)

        async with supervising(supervisor) as results:
            await wait_until(lambda: len(supervisor.live_names) == 2)

            assert await coordinator.trigger("test") is True
            assert coordinator.triggered is True
            assert coordinator.reason == "test"

            await wait_until(lambda: bool(results))

        assert results == [0]
        assert supervisor.live_names == []
        assert recording_sink.of_type(UnitEventType.RESTARTING) == []
        exited = recording_sink.of_type(UnitEventType.EXITED)
        assert sorted(e.unit_name for e in exited) == ["alpha", "bravo"]
        assert all(e.message == "Stopped for shutdown" for e in exited)

    @posix_only
    async def test_second_trigger_is_ignored(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", TERM_IGNORING_BOT)
        config = make_config(shutdown_grace_period=0.2, force_kill_timeout=0.5)
        supervisor = _supervisor(tmp_path, config, recording_sink)
        coordinator = ShutdownCoordinator(supervisor)

        async with supervising(supervisor) as results:
            await wait_until(lambda: "ready" in recording_sink.output("alpha"))

            assert await coordinator.trigger("first") is True
            assert await coordinator.trigger("second") is False
            assert coordinator.reason == "first"

            await wait_until(lambda: bool(results))

        assert len(recording_sink.of_type(UnitEventType.STOPPING)) == 1

    async def test_shutdown_without_live_bots_exits_immediately(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        config = make_config(autostart=False, shutdown_grace_period=30, force_kill_timeout=30)
        supervisor = _supervisor(tmp_path, config, recording_sink)
        coordinator = ShutdownCoordinator(supervisor)

        async with supervising(supervisor) as results:
            assert await coordinator.trigger("test") is True

            await wait_until(lambda: bool(results), timeout=2)

        assert results == [0]

    async def test_no_restart_during_shutdown(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(), recording_sink)
        coordinator = ShutdownCoordinator(supervisor)

        async with supervising(supervisor) as results:
            await wait_until(lambda: supervisor.is_live("alpha"))
            _ = await coordinator.trigger("test")

            with pytest.raises(SupervisorNotRunningError, match="shutting down"):
                await supervisor.request_start("alpha")

            await wait_until(lambda: bool(results))

        assert supervisor.state("alpha") == UnitState.STOPPED


class TestStopPendingRestart:
    async def test_stop_cancels_pending_restart(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CRASHING_BOT)
        config = make_config(restart_delay=0.5)
        supervisor = _supervisor(tmp_path, config, recording_sink)

        async with supervising(supervisor):
            await wait_until(
                lambda: supervisor.state("alpha") == UnitState.RESTART_PENDING
            )

            assert await supervisor.stop("alpha") is True
            assert supervisor.state("alpha") == UnitState.STOPPED

            await anyio.sleep(0.8)

        assert len(recording_sink.of_type(UnitEventType.STARTED)) == 1
        assert supervisor.state("alpha") == UnitState.STOPPED
