"""Graceful shutdown for the supervisor.

The ShutdownCoordinator turns a shutdown request (SIGINT, SIGTERM or a control
API call) into a drain: every live bot is stopped, no further restarts are
scheduled, and the supervisor exits once all bots are gone or the shutdown
window (grace period plus force-kill timeout) has elapsed.
"""

import signal
from typing import TYPE_CHECKING, final

import anyio

if TYPE_CHECKING:
    from ._supervisor import Supervisor


@final
class ShutdownCoordinator:
    """Drains a Supervisor exactly once.

    Attributes:
        reason: What triggered the shutdown, or None if not triggered.
    """

    __slots__ = ("_supervisor", "reason")

    def __init__(self, supervisor: "Supervisor") -> None:  # noqa: UP037
        """Initialize the coordinator.

        Args:
            supervisor: The supervisor to shut down.
        """
        self._supervisor = supervisor
        self.reason: str | None = None

    @property
    def triggered(self) -> bool:
        """Whether shutdown has begun."""
        return self._supervisor.draining

    @property
    def window(self) -> float:
        """Seconds between the trigger and the forced exit."""
        advanced = self._supervisor.config.advanced
        return advanced.shutdown_grace_period + advanced.force_kill_timeout

    async def trigger(self, reason: str = "request") -> bool:
        """Begin shutdown.

        Only the first call has any effect. With no live bots the supervisor
        exits immediately; otherwise every live bot is stopped and the exit is
        scheduled at the end of the shutdown window. The supervisor also exits
        as soon as the last live bot is gone.

        Args:
            reason: What triggered the shutdown, for logging.

        Returns:
            True if this call began shutdown, False if it was already under way.
        """
        if not self._supervisor.begin_draining():
            self._supervisor.logger.debug("shutdown_already_in_progress", reason=reason)
            return False

        self.reason = reason
        live = self._supervisor.live_names
        self._supervisor.logger.info(
            "shutdown_requested",
            reason=reason,
            live_bots=live,
            window=self.window,
        )

        if not live:
            self._supervisor.finish(0)
            return True

        self._supervisor.schedule(self._exit_after_window)
        for name in live:
            _ = await self._supervisor.stop(name)

        return True

    async def _exit_after_window(self) -> None:
        await anyio.sleep(self.window)
        self._supervisor.logger.warning(
            "shutdown_window_elapsed",
            remaining_bots=self._supervisor.live_names,
        )
        self._supervisor.finish(0)

    async def handle_signals(self) -> None:
        """Trigger shutdown on SIGINT or SIGTERM.

        Runs until cancelled. Repeated signals are ignored once shutdown has
        begun.
        """
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                _ = await self.trigger(reason=signal.Signals(signum).name)
