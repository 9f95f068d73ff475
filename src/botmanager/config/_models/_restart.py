"""Restart policy configuration model."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class RestartConfig(BaseModel):
    """Restart policy section.

    Attributes:
        max_attempts: Consecutive restarts allowed before a bot is given up on.
            Zero or negative means unlimited.
        restart_delay: Seconds to wait before restarting a crashed bot.
        autostart: Whether discovered bots are started when the supervisor starts.
        reset_counter_after_minutes: Minutes a bot must stay up before its
            restart counter is cleared.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", strict=True
    )

    max_attempts: int = 5
    restart_delay: float = Field(default=3.0, ge=0)
    autostart: bool = True
    reset_counter_after_minutes: float = Field(default=30.0, ge=0)
