"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    ResourceEndpoint,
    ResourcePoolConfig,
    ScanConfig,
    SinkConfig,
    StrategiesConfig,
    StrategyConfig,
    TrackerConfig,
    VocabularyConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "ResourceEndpoint",
    "ResourcePoolConfig",
    "ScanConfig",
    "SinkConfig",
    "StrategiesConfig",
    "StrategyConfig",
    "TrackerConfig",
    "VocabularyConfig",
]
