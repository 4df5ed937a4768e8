"""Configuration management with Pydantic validation."""

from olm_orchestrator.core.config.models import (
    ChannelConfig,
    InstallerConfig,
    MonitoringConfig,
    OperatorSelection,
    load_config,
)

__all__ = [
    "ChannelConfig",
    "InstallerConfig",
    "MonitoringConfig",
    "OperatorSelection",
    "load_config",
]
