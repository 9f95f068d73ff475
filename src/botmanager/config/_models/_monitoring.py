"""Monitoring configuration model."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class MonitoringConfig(BaseModel):
    """Monitoring configuration section.

    Attributes:
        status_interval: Seconds between periodic status reports.
            Zero or negative disables them.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", strict=True
    )

    status_interval: float = 60.0
