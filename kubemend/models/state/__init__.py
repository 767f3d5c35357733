"""State and settings models."""

from kubemend.models.state.app_settings import (
    ConfigError,
    ConfigLoadError,
    RemediationSettings,
)
from kubemend.models.state.cluster_snapshot import ClusterSnapshot
from kubemend.models.state.config_manager import ConfigManager

__all__ = [
    "ClusterSnapshot",
    "ConfigError",
    "ConfigLoadError",
    "ConfigManager",
    "RemediationSettings",
]
