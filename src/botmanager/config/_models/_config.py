"""Root configuration model.

This module provides the Config class that groups the four policy sections
into one immutable snapshot, loaded once when the supervisor starts.
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from botmanager.config._models._advanced import AdvancedConfig
from botmanager.config._models._logging import LoggingConfig
from botmanager.config._models._monitoring import MonitoringConfig
from botmanager.config._models._restart import RestartConfig


class Config(BaseModel):
    """Immutable policy configuration.

    Attributes:
        restart: Restart policy settings.
        logging: Log file and diagnostic log settings.
        monitoring: Periodic status report settings.
        advanced: Shutdown timing, startup pacing and debug settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    restart: RestartConfig = RestartConfig()
    logging: LoggingConfig = LoggingConfig()
    monitoring: MonitoringConfig = MonitoringConfig()
    advanced: AdvancedConfig = AdvancedConfig()

    def to_dict(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return the configuration as plain TOML/JSON-compatible data."""
        return self.model_dump(mode="json")

    @property
    def debug(self) -> bool:
        """Whether debug output is enabled."""
        return self.advanced.debug_mode
