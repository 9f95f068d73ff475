"""Restart attempt tracking for supervised bots.

This module provides the bounded-attempt restart policy. Each bot has a
counter of consecutive restarts; a bot with no entry has made zero attempts.
The counter is cleared once a bot has stayed up long enough.
"""

from typing import final


@final
class RestartPolicy:
    """Per-bot counter of consecutive restart attempts.

    Admits restarts while a bot's count is below the ceiling. A ceiling of
    zero or less admits restarts without limit.

    Attributes:
        max_attempts: The restart ceiling.
    """

    __slots__ = ("_attempts", "max_attempts")

    def __init__(self, max_attempts: int) -> None:
        """Initialize the policy.

        Args:
            max_attempts: Restarts allowed before giving up. Zero or negative
                means unlimited.
        """
        self.max_attempts = max_attempts
        self._attempts: dict[str, int] = {}

    @property
    def unlimited(self) -> bool:
        """Whether restarts are admitted without limit."""
        return self.max_attempts <= 0

    def attempts(self, name: str) -> int:
        """Return the current attempt count for a bot."""
        return self._attempts.get(name, 0)

    def admit(self, name: str) -> bool:
        """Check whether another restart is allowed for a bot.

        Args:
            name: The bot name.

        Returns:
            True if the count is below the ceiling or there is no ceiling.
        """
        if self.unlimited:
            return True
        return self.attempts(name) < self.max_attempts

    def increment(self, name: str) -> int:
        """Record one more restart attempt.

        Args:
            name: The bot name.

        Returns:
            The new attempt count.
        """
        count = self.attempts(name) + 1
        self._attempts[name] = count
        return count

    def reset(self, name: str) -> None:
        """Clear a bot's attempt count."""
        _ = self._attempts.pop(name, None)
