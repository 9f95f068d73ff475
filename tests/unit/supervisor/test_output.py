import re

import pytest
from rich.console import Console

from botmanager.supervisor import (
    ConsoleOutputSink,
    UnitEvent,
    UnitEventType,
    UnitState,
    UnitStatus,
)

pytestmark = pytest.mark.anyio


def _event(event_type: UnitEventType, **details: object) -> UnitEvent:
    return UnitEvent(
        unit_name="alpha",
        event_type=event_type,
        timestamp="2026-03-14T09:05:07Z",
        **details,  # pyright: ignore[reportArgumentType]
    )


class TestWriteChunk:
    async def test_stdout_is_prefixed_and_trimmed(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_chunk("alpha", 42, "stdout", "  hello world \n")

        assert capsys.readouterr().out == "[alpha] hello world\n"

    async def test_stderr_is_marked(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_chunk("alpha", 42, "stderr", "boom\n")

        assert capsys.readouterr().out == "[alpha] ERROR: boom\n"

    async def test_whitespace_chunk_is_skipped(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_chunk("alpha", 42, "stdout", " \n\t")

        assert capsys.readouterr().out == ""

    async def test_timestamp_prefix(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=True)

        await sink.write_chunk("alpha", 42, "stdout", "hi")

        assert re.fullmatch(r"\[\d{2}:\d{2}:\d{2}\] \[alpha\] hi\n", capsys.readouterr().out)


class TestWriteEvent:
    async def test_started(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_event(_event(UnitEventType.STARTED, pid=42))

        assert capsys.readouterr().out == "[alpha] STARTED (pid=42)\n"

    async def test_exited_shows_code_and_signal(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_event(
            _event(UnitEventType.EXITED, pid=42, exit_code=None, signal="SIGKILL")
        )

        assert "EXITED (pid=42) code=None signal=SIGKILL" in capsys.readouterr().out

    async def test_restarting_shows_attempt_of_ceiling(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_event(
            _event(UnitEventType.RESTARTING, attempt=2, max_attempts=5, message="soon")
        )

        assert capsys.readouterr().out == "[alpha] RESTARTING attempt 2/5 - soon\n"

    async def test_unlimited_attempt(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_event(_event(UnitEventType.RESTARTING, attempt=7))

        assert "attempt 7\n" in capsys.readouterr().out

    async def test_counter_reset_hidden_without_debug(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_event(_event(UnitEventType.COUNTER_RESET))

        assert capsys.readouterr().out == ""

    async def test_counter_reset_shown_with_debug(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False, show_debug=True)

        await sink.write_event(_event(UnitEventType.COUNTER_RESET))

        assert "COUNTER_RESET" in capsys.readouterr().out


class TestWriteStatus:
    async def test_empty(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_status([])

        assert "No bots currently running." in capsys.readouterr().out

    async def test_table_rows(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sink = ConsoleOutputSink(console, timestamps=False)

        await sink.write_status(
            [
                UnitStatus(
                    name="alpha",
                    state=UnitState.RUNNING,
                    pid=42,
                    uptime_seconds=3723,
                    restart_attempts=1,
                )
            ]
        )

        out = capsys.readouterr().out
        assert "Bot Manager Status" in out
        assert "alpha" in out
        assert "1h 2m 3s" in out
        assert "42" in out
