"""Configuration models and the comparison config store."""

from .config import (
    ComparisonConfig,
    ConfigStore,
    MonitoringConfig,
    RegistryConfig,
    Settings,
    find_config_file,
)

__all__ = [
    "ComparisonConfig",
    "ConfigStore",
    "MonitoringConfig",
    "RegistryConfig",
    "Settings",
    "find_config_file",
]
