"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    Credentials,
    DeliveryConfig,
    HarvesterConfig,
    ScheduleConfig,
    ScheduleType,
    SourceConfig,
    SourceId,
    TransformConfig,
    default_sources,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "Credentials",
    "DeliveryConfig",
    "HarvesterConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SourceConfig",
    "SourceId",
    "TransformConfig",
    "default_sources",
]
