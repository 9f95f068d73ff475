"""Advanced configuration model."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class AdvancedConfig(BaseModel):
    """Advanced configuration section.

    Attributes:
        shutdown_grace_period: Seconds added to force_kill_timeout before the
            supervisor exits during shutdown.
        force_kill_timeout: Seconds between SIGTERM and SIGKILL when stopping a bot.
        startup_delay: Milliseconds between starting consecutive bots.
        debug_mode: Show debug events on the console and in the diagnostic log.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", strict=True
    )

    shutdown_grace_period: float = Field(default=5.0, ge=0)
    force_kill_timeout: float = Field(default=10.0, ge=0)
    startup_delay: int = Field(default=500, ge=0)
    debug_mode: bool = False
