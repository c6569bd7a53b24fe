"""Configuration for kubedrop runs."""

from .provider import (
    ClusterConfig,
    ConfigProvider,
    DeliveryConfig,
    EnvConfigProvider,
    WorkloadConfig,
)

__all__ = [
    "ClusterConfig",
    "ConfigProvider",
    "DeliveryConfig",
    "EnvConfigProvider",
    "WorkloadConfig",
]
