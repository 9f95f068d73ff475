from pathlib import Path

import anyio
import pytest

from botmanager.config import Config
from botmanager.exceptions import UnitAlreadyRunningError
from botmanager.supervisor import (
    FileLogSinkProvider,
    Supervisor,
    UnitEventType,
    UnitState,
    discover_units,
)
from tests.conftest import RecordingOutputSink, make_config, wait_until, write_bot
from tests.integration.conftest import (
    CLEAN_BOT,
    CRASHING_BOT,
    LONG_RUNNING_BOT,
    SLOW_CRASHING_BOT,
    supervising,
)

pytestmark = pytest.mark.anyio


def _supervisor(
    tmp_path: Path,
    config: Config,
    sink: RecordingOutputSink,
    *,
    with_logs: bool = False,
) -> Supervisor:
    result = discover_units(tmp_path / "bots")
    log_sinks = (
        FileLogSinkProvider(tmp_path / "logs", config.logging) if with_logs else None
    )
    return Supervisor(result.units, config, output_sink=sink, log_sinks=log_sinks)


class TestRestartCeiling:
    async def test_gives_up_after_max_attempts(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CRASHING_BOT)
        supervisor = _supervisor(tmp_path, make_config(max_attempts=2), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: supervisor.state("alpha") == UnitState.FAILED)

        assert len(recording_sink.of_type(UnitEventType.STARTED)) == 3
        restarting = recording_sink.of_type(UnitEventType.RESTARTING)
        assert [e.attempt for e in restarting] == [1, 2]
        assert all(e.max_attempts == 2 for e in restarting)
        assert len(recording_sink.of_type(UnitEventType.FAILED)) == 1
        assert supervisor.live_names == []
        assert supervisor.policy.attempts("alpha") == 2

    async def test_exit_codes_are_reported(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CRASHING_BOT)
        supervisor = _supervisor(tmp_path, make_config(max_attempts=1), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: supervisor.state("alpha") == UnitState.FAILED)

        exits = recording_sink.of_type(UnitEventType.EXITED)
        assert [(e.exit_code, e.signal) for e in exits] == [(1, None), (1, None)]
        assert "crashing" in recording_sink.output("alpha")

    async def test_restart_markers_in_log(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CRASHING_BOT)
        supervisor = _supervisor(
            tmp_path, make_config(max_attempts=1), recording_sink, with_logs=True
        )

        async with supervising(supervisor):
            await wait_until(lambda: supervisor.state("alpha") == UnitState.FAILED)

        content = "".join(
            p.read_text() for p in sorted((tmp_path / "logs" / "alpha").rglob("*.log"))
        )
        assert "=== Bot alpha started at" in content
        assert "(INITIAL) ===" in content
        assert "(RESTART) ===" in content
        assert "exited with code 1 (signal: None)" in content

    async def test_each_run_gets_its_own_log_file(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CRASHING_BOT)
        supervisor = _supervisor(
            tmp_path, make_config(max_attempts=2), recording_sink, with_logs=True
        )

        async with supervising(supervisor):
            await wait_until(lambda: supervisor.state("alpha") == UnitState.FAILED)

        runs = len(recording_sink.of_type(UnitEventType.STARTED))
        files = list((tmp_path / "logs" / "alpha").rglob("*.log"))
        assert runs == 3
        assert len(files) == runs
        assert all(p.read_text().count("started at") == 1 for p in files)

    async def test_unlimited_attempts_keep_restarting(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CRASHING_BOT)
        supervisor = _supervisor(tmp_path, make_config(max_attempts=0), recording_sink)

        async with supervising(supervisor):
            await wait_until(
                lambda: len(recording_sink.of_type(UnitEventType.RESTARTING)) >= 4
            )
            assert supervisor.state("alpha") != UnitState.FAILED

        assert all(
            e.max_attempts is None for e in recording_sink.of_type(UnitEventType.RESTARTING)
        )

    async def test_manual_start_of_failed_bot_resets_counter(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CRASHING_BOT)
        supervisor = _supervisor(tmp_path, make_config(max_attempts=1), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: supervisor.state("alpha") == UnitState.FAILED)

            await supervisor.request_start("alpha")

            await wait_until(
                lambda: len(recording_sink.of_type(UnitEventType.FAILED)) == 2
            )

        assert len(recording_sink.of_type(UnitEventType.STARTED)) == 4


class TestCleanExit:
    async def test_clean_exit_is_not_restarted(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", CLEAN_BOT)
        supervisor = _supervisor(tmp_path, make_config(), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: bool(recording_sink.of_type(UnitEventType.EXITED)))
            await anyio.sleep(0.3)

            assert supervisor.state("alpha") == UnitState.STOPPED

        assert len(recording_sink.of_type(UnitEventType.STARTED)) == 1
        assert recording_sink.of_type(UnitEventType.RESTARTING) == []
        assert recording_sink.of_type(UnitEventType.EXITED)[0].exit_code == 0
        assert "hello from bot" in recording_sink.output("alpha")


class TestCounterReset:
    async def test_counter_resets_after_healthy_runtime(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        # Each run stays up for 0.6s; the counter resets after 0.3s of runtime
        _ = write_bot(tmp_path / "bots", "alpha", SLOW_CRASHING_BOT)
        config = make_config(max_attempts=1, reset_counter_after_minutes=0.005)
        supervisor = _supervisor(tmp_path, config, recording_sink)

        async with supervising(supervisor):
            await wait_until(
                lambda: len(recording_sink.of_type(UnitEventType.RESTARTING)) >= 3,
                timeout=20,
            )

        assert recording_sink.of_type(UnitEventType.FAILED) == []
        assert len(recording_sink.of_type(UnitEventType.COUNTER_RESET)) >= 3
        assert all(
            e.attempt == 1 for e in recording_sink.of_type(UnitEventType.RESTARTING)
        )

    async def test_counter_not_reset_before_threshold(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", SLOW_CRASHING_BOT)
        supervisor = _supervisor(tmp_path, make_config(max_attempts=1), recording_sink)

        async with supervising(supervisor):
            await wait_until(
                lambda: supervisor.state("alpha") == UnitState.FAILED, timeout=20
            )

        assert recording_sink.of_type(UnitEventType.COUNTER_RESET) == []


class TestStartup:
    async def test_bots_start_in_name_order(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        for name in ("charlie", "alpha", "bravo"):
            _ = write_bot(tmp_path / "bots", name, LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(startup_delay=50), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: len(supervisor.live_names) == 3)

        started = [e.unit_name for e in recording_sink.of_type(UnitEventType.STARTED)]
        assert started == ["alpha", "bravo", "charlie"]

    async def test_autostart_disabled(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(autostart=False), recording_sink)

        async with supervising(supervisor):
            await anyio.sleep(0.3)

            assert supervisor.live_names == []
            assert supervisor.get_status() == []
            assert [s.state for s in supervisor.describe_units()] == [UnitState.STOPPED]

            await supervisor.request_start("alpha")
            assert supervisor.live_names == ["alpha"]

        assert len(recording_sink.of_type(UnitEventType.STARTED)) == 1

    async def test_start_of_running_bot_is_rejected(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: supervisor.is_live("alpha"))

            with pytest.raises(UnitAlreadyRunningError):
                await supervisor.request_start("alpha")


class TestStatus:
    async def test_status_reports_live_bots(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        _ = write_bot(tmp_path / "bots", "bravo", CLEAN_BOT)
        supervisor = _supervisor(tmp_path, make_config(), recording_sink)

        async with supervising(supervisor):
            await wait_until(
                lambda: supervisor.is_live("alpha")
                and supervisor.state("bravo") == UnitState.STOPPED
                and bool(recording_sink.of_type(UnitEventType.EXITED, "bravo"))
            )
            statuses = supervisor.get_status()

        assert [s.name for s in statuses] == ["alpha"]
        assert statuses[0].pid is not None
        assert statuses[0].state == UnitState.RUNNING
        assert statuses[0].uptime_seconds is not None

    async def test_periodic_status_report(
        self, tmp_path: Path, recording_sink: RecordingOutputSink
    ) -> None:
        _ = write_bot(tmp_path / "bots", "alpha", LONG_RUNNING_BOT)
        supervisor = _supervisor(tmp_path, make_config(status_interval=0.2), recording_sink)

        async with supervising(supervisor):
            await wait_until(lambda: len(recording_sink.statuses) >= 2)

        assert recording_sink.statuses[0][0].name == "alpha"
