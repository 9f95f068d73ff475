"""Process supervisor for discovered bots.

This module provides the Supervisor class that spawns bots as child
processes, routes their output to the console and to per-run log files,
classifies their exits and restarts them under the restart policy.

All state (the live process table, the restart counters and the per-bot
states) is owned by a single anyio task group and only mutated between
awaits, so no locking is needed.
"""

import contextlib
import os
import signal
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, final

import anyio
import anyio.abc
import pendulum
from anyio.streams.text import TextReceiveStream
from pendulum import DateTime  # noqa: TC002 - Used in runtime type annotations

from botmanager.exceptions import (
    SupervisorNotRunningError,
    UnitAlreadyRunningError,
    UnitNotFoundError,
)
from botmanager.utils import create_null_logger

from ._logsink import format_error_marker, format_exit_marker, format_start_marker
from ._models import (
    ERROR_SIGNAL,
    RestartDecision,
    Unit,
    UnitEvent,
    UnitEventType,
    UnitState,
    UnitStatus,
)
from ._output import ConsoleOutputSink
from ._policy import RestartPolicy
from ._protocol import LogSink  # noqa: TC001 - Used in runtime type annotations

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from structlog.typing import FilteringBoundLogger

    from botmanager.config import Config

    from ._protocol import LogSinkProvider, OutputSink

FORCED_KILL_SIGNAL = "SIGKILL"

_TERMINATE_WAIT_SECONDS = 5.0


def _get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    return pendulum.now("UTC").to_iso8601_string()


def split_returncode(returncode: int) -> tuple[int | None, str | None]:
    """Split a process return code into exit code and signal name.

    On POSIX a negative return code means the process was terminated by
    that signal.

    Args:
        returncode: The return code reported for the process.

    Returns:
        Tuple of (exit code, signal name); exactly one of them is None.
    """
    if returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, f"SIG{-returncode}"


def should_restart(exit_code: int | None, signal_name: str | None) -> bool:
    """Classify an exit as unclean.

    Any exit other than code 0 is unclean, as is termination by SIGKILL or a
    process-level error.
    """
    return exit_code != 0 or signal_name in (FORCED_KILL_SIGNAL, ERROR_SIGNAL)


@dataclass(slots=True)
class LiveProcess:
    """One running attempt of a bot.

    Attributes:
        unit: The bot being run.
        process: The child process.
        log_sink: Destination for this run's log, or None if file logging is off.
        started_at: Local time the process was spawned.
        reset_scope: Cancel scope of the pending restart-counter reset.
    """

    unit: Unit
    process: anyio.abc.Process
    log_sink: LogSink | None
    started_at: DateTime
    reset_scope: anyio.CancelScope

    @property
    def name(self) -> str:
        """The bot name."""
        return self.unit.name

    @property
    def pid(self) -> int:
        """The process ID."""
        return self.process.pid


@final
class Supervisor:
    """Supervises a fixed set of bots.

    Starts bots in discovery order, restarts crashed bots after a delay until
    the restart ceiling is reached, resets restart counters for bots that stay
    up, and stops bots with SIGTERM followed by SIGKILL. Once draining (see
    ShutdownCoordinator) no further restarts are scheduled.
    """

    __slots__ = (
        "_config",
        "_draining",
        "_exit_code",
        "_exit_event",
        "_live",
        "_log_sinks",
        "_logger",
        "_output_sink",
        "_starting",
        "_states",
        "_task_group",
        "_units",
        "policy",
    )

    def __init__(
        self,
        units: "Sequence[Unit]",  # noqa: UP037
        config: "Config",  # noqa: UP037
        *,
        output_sink: "OutputSink | None" = None,  # noqa: UP037
        log_sinks: "LogSinkProvider | None" = None,  # noqa: UP037
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the supervisor.

        Args:
            units: Discovered bots, in startup order.
            config: Policy configuration.
            output_sink: Sink for console output. Uses ConsoleOutputSink if None.
            log_sinks: Provider of per-run log files. No files are written if None.
            logger: Diagnostic logger.
        """
        self._units: dict[str, Unit] = {unit.name: unit for unit in units}
        self._config = config
        self._output_sink: OutputSink = output_sink or ConsoleOutputSink(
            timestamps=config.logging.console_timestamps,
            show_debug=config.advanced.debug_mode,
        )
        self._log_sinks = log_sinks
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else create_null_logger()
        )
        self.policy = RestartPolicy(config.restart.max_attempts)

        self._live: dict[str, LiveProcess] = {}
        self._starting: set[str] = set()
        self._states: dict[str, UnitState] = dict.fromkeys(
            self._units, UnitState.STOPPED
        )
        self._draining = False
        self._exit_code = 0
        self._exit_event: anyio.Event | None = None
        self._task_group: anyio.abc.TaskGroup | None = None

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def config(self) -> "Config":  # noqa: UP037
        """The policy configuration."""
        return self._config

    @property
    def logger(self) -> "FilteringBoundLogger":  # noqa: UP037
        """The diagnostic logger."""
        return self._logger

    @property
    def units(self) -> dict[str, Unit]:
        """Discovered bots by name, in startup order."""
        return dict(self._units)

    @property
    def draining(self) -> bool:
        """Whether shutdown has begun."""
        return self._draining

    @property
    def running(self) -> bool:
        """Whether run() is active."""
        return self._task_group is not None

    @property
    def live_names(self) -> list[str]:
        """Names of bots with a live process."""
        return list(self._live)

    def is_live(self, name: str) -> bool:
        """Check whether a bot has a live process."""
        return name in self._live

    def get_unit(self, name: str) -> Unit:
        """Get a bot by name.

        Args:
            name: The bot name.

        Returns:
            The Unit for the named bot.

        Raises:
            UnitNotFoundError: If no bot with that name was discovered.
        """
        unit = self._units.get(name)
        if unit is None:
            msg = f"Bot '{name}' not found"
            raise UnitNotFoundError(msg, unit_name=name)
        return unit

    def state(self, name: str) -> UnitState:
        """Get a bot's lifecycle state.

        Raises:
            UnitNotFoundError: If no bot with that name was discovered.
        """
        _ = self.get_unit(name)
        return self._states[name]

    def _status_for(self, name: str, now: DateTime) -> UnitStatus:
        record = self._live.get(name)
        if record is None:
            return UnitStatus(
                name=name,
                state=self._states[name],
                restart_attempts=self.policy.attempts(name),
            )
        return UnitStatus(
            name=name,
            state=self._states[name],
            pid=record.pid,
            uptime_seconds=record.started_at.diff(now).in_seconds(),
            restart_attempts=self.policy.attempts(name),
        )

    def get_status(self) -> list[UnitStatus]:
        """Report the live bots with their uptime and process ID."""
        now = pendulum.now()
        return [self._status_for(name, now) for name in self._live]

    def describe_units(self) -> list[UnitStatus]:
        """Report every discovered bot, live or not."""
        now = pendulum.now()
        return [self._status_for(name, now) for name in self._units]

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def _require_task_group(self) -> anyio.abc.TaskGroup:
        if self._task_group is None:
            msg = "Supervisor is not running"
            raise SupervisorNotRunningError(msg)
        return self._task_group

    def schedule(
        self,
        func: "Callable[..., Awaitable[object]]",  # noqa: UP037
        *args: object,
    ) -> None:
        """Run a coroutine function as a task of the supervisor.

        Raises:
            SupervisorNotRunningError: If run() is not active.
        """
        self._require_task_group().start_soon(func, *args)

    def begin_draining(self) -> bool:
        """Enter the draining state.

        Returns:
            True on the first call, False if already draining.
        """
        if self._draining:
            return False
        self._draining = True
        return True

    def finish(self, exit_code: int = 0) -> None:
        """Make run() return with the given exit status."""
        self._exit_code = exit_code
        if self._exit_event is not None:
            self._exit_event.set()

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    async def _emit(
        self,
        event_type: UnitEventType,
        name: str,
        **details: object,
    ) -> None:
        event = UnitEvent(
            unit_name=name,
            event_type=event_type,
            timestamp=_get_timestamp(),
            **details,  # pyright: ignore[reportArgumentType]
        )
        try:
            await self._output_sink.write_event(event)
        except Exception:  # noqa: BLE001
            # Output sink errors should not crash the supervisor
            self._logger.exception("output_sink_failed", bot=name)

    def _open_log(self, name: str, started_at: DateTime) -> LogSink | None:
        if self._log_sinks is None:
            return None
        try:
            return self._log_sinks.open(name, started_at)
        except OSError:
            # Bot runs without a log file
            self._logger.exception("log_sink_failed", bot=name, action="open")
            return None

    def _write_log(
        self, name: str, log_sink: LogSink | None, text: str
    ) -> LogSink | None:
        """Append to a run's log file.

        Returns:
            The sink, or None once writing failed and the sink was dropped.
        """
        if log_sink is None:
            return None
        try:
            log_sink.write(text)
        except OSError:
            self._logger.exception("log_sink_failed", bot=name, action="write")
            self._close_log(name, log_sink)
            return None
        return log_sink

    def _close_log(self, name: str, log_sink: LogSink) -> None:
        try:
            log_sink.close()
        except OSError:
            self._logger.exception("log_sink_failed", bot=name, action="close")

    async def _pump(
        self,
        record: LiveProcess,
        stream: anyio.abc.ByteReceiveStream,
        stream_name: Literal["stdout", "stderr"],
    ) -> None:
        """Copy one output stream of a bot to its log file and the console."""
        logging_config = self._config.logging
        to_file = (
            logging_config.log_normal_operations
            if stream_name == "stdout"
            else logging_config.log_errors
        )

        try:
            async for chunk in TextReceiveStream(stream, errors="replace"):
                if to_file:
                    record.log_sink = self._write_log(
                        record.name, record.log_sink, chunk
                    )
                try:
                    await self._output_sink.write_chunk(
                        record.name, record.pid, stream_name, chunk
                    )
                except Exception:  # noqa: BLE001
                    # Output sink errors should not crash streaming
                    self._logger.exception("output_sink_failed", bot=record.name)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _child_env(self, unit: Unit) -> dict[str, str]:
        return {**os.environ, "PYTHONUNBUFFERED": "1", **unit.env}

    async def start(self, name: str, *, is_restart: bool = False) -> None:
        """Spawn a process for a bot.

        Opens the run's log file, writes the start marker, spawns the process
        with the bot directory as working directory and captured output, and
        schedules the restart-counter reset. A spawn failure is handled as a
        process-level error, which counts as an unclean exit.
        A log file that cannot be opened or written is dropped and the bot
        keeps running without one.

        Args:
            name: The bot name.
            is_restart: Whether this start is an automatic restart.

        Raises:
            UnitNotFoundError: If no bot with that name was discovered.
            UnitAlreadyRunningError: If the bot already has a live process.
            SupervisorNotRunningError: If run() is not active or shutdown has begun.
        """
        unit = self.get_unit(name)

        if self._draining:
            msg = "Supervisor is shutting down"
            raise SupervisorNotRunningError(msg)

        task_group = self._require_task_group()

        if name in self._live or name in self._starting:
            msg = f"Bot '{name}' is already running"
            raise UnitAlreadyRunningError(msg, unit_name=name)

        spawn_error: OSError | None = None
        decision: RestartDecision | None = None
        self._starting.add(name)
        try:
            started_at = pendulum.now()
            log_sink = self._write_log(
                name,
                self._open_log(name, started_at),
                format_start_marker(name, _get_timestamp(), is_restart=is_restart),
            )

            try:
                process = await anyio.open_process(
                    unit.command,
                    cwd=unit.path,
                    env=self._child_env(unit),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as e:
                spawn_error = e
                decision = self._on_process_error(name, log_sink, e)
            else:
                record = LiveProcess(
                    unit=unit,
                    process=process,
                    log_sink=log_sink,
                    started_at=started_at,
                    reset_scope=anyio.CancelScope(),
                )
                self._live[name] = record
                self._states[name] = UnitState.RUNNING
        finally:
            self._starting.discard(name)

        if spawn_error is not None and decision is not None:
            await self._emit(
                UnitEventType.ERROR,
                name,
                exit_code=1,
                signal=ERROR_SIGNAL,
                message=f"Process error: {spawn_error}",
            )
            await self._emit_decision(name, decision)
            return

        task_group.start_soon(self._watch, record)
        task_group.start_soon(self._reset_counter_later, record)

        self._logger.info(
            "bot_started",
            bot=name,
            pid=record.pid,
            restart=is_restart,
            command=list(unit.command),
        )
        await self._emit(
            UnitEventType.STARTED,
            name,
            pid=record.pid,
            message="restart" if is_restart else None,
        )

    async def request_start(self, name: str) -> None:
        """Start a bot on operator request.

        A bot that gave up after reaching the restart ceiling has its
        counter cleared first.

        Args:
            name: The bot name.

        Raises:
            UnitNotFoundError: If no bot with that name was discovered.
            UnitAlreadyRunningError: If the bot already has a live process.
            SupervisorNotRunningError: If run() is not active or shutdown has begun.
        """
        if self.state(name) == UnitState.FAILED:
            self.policy.reset(name)
        await self.start(name)

    async def _watch(self, record: LiveProcess) -> None:
        """Stream a bot's output until its process exits, then handle the exit."""
        process = record.process
        returncode = 0

        try:
            async with anyio.create_task_group() as tg:
                if process.stdout is not None:
                    tg.start_soon(self._pump, record, process.stdout, "stdout")
                if process.stderr is not None:
                    tg.start_soon(self._pump, record, process.stderr, "stderr")

                returncode = await process.wait()
        except anyio.get_cancelled_exc_class():
            # Supervisor is exiting; make sure the child does not outlive it
            with anyio.CancelScope(shield=True):
                await self._terminate(record)
            raise

        exit_code, signal_name = split_returncode(returncode)
        decision = self._on_exit(record, exit_code, signal_name)

        await self._emit(
            UnitEventType.EXITED,
            record.name,
            pid=record.pid,
            exit_code=exit_code,
            signal=signal_name,
            message=_EXIT_MESSAGES[decision],
        )
        await self._emit_decision(record.name, decision)

    def _on_exit(
        self,
        record: LiveProcess,
        exit_code: int | None,
        signal_name: str | None,
    ) -> RestartDecision:
        """Finish a run: exit marker, close the log, drop the record, decide."""
        name = record.name
        logging_config = self._config.logging

        if record.log_sink is not None:
            clean = exit_code == 0
            if (clean and logging_config.log_normal_operations) or (
                not clean and logging_config.log_errors
            ):
                record.log_sink = self._write_log(
                    name,
                    record.log_sink,
                    format_exit_marker(name, exit_code, signal_name, _get_timestamp()),
                )
            if record.log_sink is not None:
                self._close_log(name, record.log_sink)
                record.log_sink = None

        record.reset_scope.cancel()
        if self._live.get(name) is record:
            del self._live[name]

        self._logger.info(
            "bot_exited",
            bot=name,
            pid=record.pid,
            exit_code=exit_code,
            signal=signal_name,
        )

        decision = self.handle_exit(name, exit_code, signal_name)

        if self._draining and not self._live:
            self.finish(0)

        return decision

    def _on_process_error(
        self,
        name: str,
        log_sink: LogSink | None,
        error: OSError,
    ) -> RestartDecision:
        """Handle a bot whose process could not be run."""
        if log_sink is not None and self._config.logging.log_errors:
            log_sink = self._write_log(
                name, log_sink, format_error_marker(name, str(error), _get_timestamp())
            )
        if log_sink is not None:
            self._close_log(name, log_sink)

        self._logger.error("bot_process_error", bot=name, error=str(error))
        return self.handle_exit(name, 1, ERROR_SIGNAL)

    def handle_exit(
        self,
        name: str,
        exit_code: int | None,
        signal_name: str | None,
    ) -> RestartDecision:
        """Decide what happens after a bot's process ended.

        Does nothing while draining. A bot that was stopped on request stays
        stopped. An unclean exit schedules a restart after the restart delay
        while the policy admits one; otherwise the bot is marked failed. A
        clean exit is not restarted.

        Args:
            name: The bot name.
            exit_code: The exit code, or None if terminated by a signal.
            signal_name: The terminating signal, "ERROR" for a process-level
                error, or None.

        Returns:
            The decision taken.

        Raises:
            SupervisorNotRunningError: If a restart is due but run() is not active.
        """
        if self._draining:
            self._states[name] = UnitState.STOPPED
            return RestartDecision.DRAINING

        if self._states.get(name) == UnitState.STOPPING:
            self._states[name] = UnitState.STOPPED
            return RestartDecision.STOPPED

        if not should_restart(exit_code, signal_name):
            self._states[name] = UnitState.STOPPED
            return RestartDecision.CLEAN_EXIT

        if not self.policy.admit(name):
            self._states[name] = UnitState.FAILED
            self._logger.error(
                "restart_limit_reached",
                bot=name,
                max_attempts=self.policy.max_attempts,
            )
            return RestartDecision.GIVE_UP

        task_group = self._require_task_group()
        attempt = self.policy.increment(name)
        self._states[name] = UnitState.RESTART_PENDING
        self._logger.info(
            "restart_scheduled",
            bot=name,
            attempt=attempt,
            max_attempts=None if self.policy.unlimited else self.policy.max_attempts,
            delay=self._config.restart.restart_delay,
        )
        task_group.start_soon(self._restart_later, name)
        return RestartDecision.RESTART

    async def _emit_decision(self, name: str, decision: RestartDecision) -> None:
        if decision == RestartDecision.RESTART:
            await self._emit(
                UnitEventType.RESTARTING,
                name,
                attempt=self.policy.attempts(name),
                max_attempts=None if self.policy.unlimited else self.policy.max_attempts,
                message=f"Restarting in {self._config.restart.restart_delay:g} seconds",
            )
        elif decision == RestartDecision.GIVE_UP:
            await self._emit(
                UnitEventType.FAILED,
                name,
                max_attempts=self.policy.max_attempts,
                message=(
                    "Exceeded maximum restart attempts "
                    f"({self.policy.max_attempts}). Giving up. "
                    "Fix the issue and start the bot again."
                ),
            )

    async def _restart_later(self, name: str) -> None:
        """Restart a crashed bot once the restart delay has elapsed."""
        await anyio.sleep(self._config.restart.restart_delay)

        if self._draining or self._states.get(name) != UnitState.RESTART_PENDING:
            return
        if name in self._live or name in self._starting:
            return

        await self.start(name, is_restart=True)

    async def _reset_counter_later(self, record: LiveProcess) -> None:
        """Clear a bot's restart counter once it has stayed up long enough."""
        with record.reset_scope:
            await anyio.sleep(self._config.restart.reset_counter_after_minutes * 60)

            if self._live.get(record.name) is not record:
                return

            previous = self.policy.attempts(record.name)
            self.policy.reset(record.name)
            self._logger.debug(
                "restart_counter_reset",
                bot=record.name,
                previous_attempts=previous,
            )
            await self._emit(
                UnitEventType.COUNTER_RESET,
                record.name,
                pid=record.pid,
                message="Reset restart attempts after successful runtime",
            )

    async def stop(self, name: str) -> bool:
        """Stop a bot.

        Cancels the pending counter reset, sends SIGTERM and schedules SIGKILL
        after the force-kill timeout in case the process is still live then.
        A bot waiting to be restarted is kept down instead.

        Args:
            name: The bot name.

        Returns:
            True if anything was stopped.

        Raises:
            UnitNotFoundError: If no bot with that name was discovered.
            SupervisorNotRunningError: If run() is not active.
        """
        _ = self.get_unit(name)
        record = self._live.get(name)

        if record is None:
            if self._states[name] != UnitState.RESTART_PENDING:
                return False
            self._states[name] = UnitState.STOPPED
            self._logger.info("pending_restart_cancelled", bot=name)
            await self._emit(
                UnitEventType.STOPPING, name, message="Pending restart cancelled"
            )
            return True

        record.reset_scope.cancel()
        self._states[name] = UnitState.STOPPING
        with contextlib.suppress(ProcessLookupError):
            record.process.terminate()
        self.schedule(self._force_kill_later, record)

        self._logger.info("bot_stopping", bot=name, pid=record.pid)
        await self._emit(UnitEventType.STOPPING, name, pid=record.pid)
        return True

    async def _force_kill_later(self, record: LiveProcess) -> None:
        """Send SIGKILL if a stopped bot is still live after the timeout."""
        await anyio.sleep(self._config.advanced.force_kill_timeout)

        if self._live.get(record.name) is not record:
            return

        self._logger.warning("bot_force_killed", bot=record.name, pid=record.pid)
        with contextlib.suppress(ProcessLookupError):
            record.process.kill()
        await self._emit(
            UnitEventType.KILLED,
            record.name,
            pid=record.pid,
            message="Did not stop in time, force killed",
        )

    async def _terminate(self, record: LiveProcess) -> None:
        """Kill a bot's process without restart handling."""
        with contextlib.suppress(ProcessLookupError):
            record.process.kill()
        with anyio.move_on_after(_TERMINATE_WAIT_SECONDS):
            _ = await record.process.wait()

        if record.log_sink is not None:
            self._close_log(record.name, record.log_sink)
            record.log_sink = None
        if self._live.get(record.name) is record:
            del self._live[record.name]
        self._states[record.name] = UnitState.STOPPED

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    async def _start_all(self) -> None:
        """Start every bot in order, pausing startup_delay between launches."""
        delay = self._config.advanced.startup_delay / 1000
        names = list(self._units)

        for index, name in enumerate(names):
            if self._draining:
                return
            if name not in self._live and name not in self._starting:
                await self.start(name)
            if index < len(names) - 1:
                await anyio.sleep(delay)

    async def _report_status_periodically(self) -> None:
        interval = self._config.monitoring.status_interval
        while True:
            await anyio.sleep(interval)
            if self._draining or not self._live:
                continue
            try:
                await self._output_sink.write_status(self.get_status())
            except Exception:  # noqa: BLE001
                # Output sink errors should not crash the supervisor
                self._logger.exception("output_sink_failed")

    async def run(self) -> int:
        """Run the supervisor.

        Starts all bots if autostart is enabled, then supervises them until
        finish() is called, normally by the ShutdownCoordinator. Bots still
        live at that point are killed.

        Returns:
            The supervisor's exit status. 0 immediately if there are no bots.
        """
        if not self._units:
            self._logger.info("no_bots_found")
            return 0

        self._exit_event = anyio.Event()
        self._logger.info("supervisor_started", bots=list(self._units))

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                if self._config.monitoring.status_interval > 0:
                    tg.start_soon(self._report_status_periodically)

                if self._config.restart.autostart:
                    await self._start_all()
                else:
                    self._logger.info("autostart_disabled")

                await self._exit_event.wait()
                tg.cancel_scope.cancel()
        finally:
            self._task_group = None

        self._logger.info("supervisor_stopped", exit_code=self._exit_code)
        return self._exit_code


_EXIT_MESSAGES: dict[RestartDecision, str] = {
    RestartDecision.RESTART: "Crashed",
    RestartDecision.GIVE_UP: "Crashed",
    RestartDecision.CLEAN_EXIT: "Exited gracefully (code 0). Not restarting.",
    RestartDecision.STOPPED: "Stopped on request",
    RestartDecision.DRAINING: "Stopped for shutdown",
}
