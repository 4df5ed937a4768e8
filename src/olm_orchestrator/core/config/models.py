"""Installer configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from olm_orchestrator.services.installer.approval import CSVWaitPolicy
from olm_orchestrator.services.installer.namespaces import (
    MONITORING_NAMESPACE,
    SYSTEM_NAMESPACE,
    validate_namespaces,
)

# XDG-compliant config location
CONFIG_DIR = Path.home() / ".config" / "olm-orchestrator"
CONFIG_FILE = CONFIG_DIR / "config.yaml"


class OperatorSelection(BaseModel):
    """Which database engine operators to install."""

    model_config = ConfigDict(extra="forbid")

    mysql: bool = Field(default=True, description="Percona XtraDB Cluster operator")
    mongodb: bool = Field(default=True, description="Percona Server for MongoDB operator")
    postgresql: bool = Field(default=True, description="Percona PostgreSQL operator")


class ChannelConfig(BaseModel):
    """Catalog channels per operator."""

    model_config = ConfigDict(extra="forbid")

    platform: str = "stable-v0"
    mysql: str = "stable-v1"
    mongodb: str = "stable-v1"
    postgresql: str = "stable-v2"
    monitoring: str = "stable-v0"


class MonitoringConfig(BaseModel):
    """Metrics agent settings."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    namespace: str = MONITORING_NAMESPACE
    operator: str = "victoriametrics-operator"


class InstallerConfig(BaseModel):
    """Complete installer configuration."""

    model_config = ConfigDict(extra="forbid")

    namespaces: list[str] = Field(default_factory=list, description="Database namespaces")
    system_namespace: str = SYSTEM_NAMESPACE
    olm_namespace: str = "olm"
    catalog_source: str = "everest-catalog"
    catalog_namespace: str = "olm"
    platform_operator: str = "everest-operator"
    controller_deployment: str = "everest-operator-controller-manager"
    operators: OperatorSelection = Field(default_factory=OperatorSelection)
    channels: ChannelConfig = Field(default_factory=ChannelConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    concurrency: int = Field(default=1, ge=1, description="Parallel operator installs")
    poll_interval: float = Field(default=1.0, gt=0)
    poll_timeout: float = Field(default=150.0, gt=0)
    wait_timeout: float = Field(default=300.0, gt=0, description="Rollout, package, CSV waits")
    csv_wait: CSVWaitPolicy = CSVWaitPolicy.NONE
    disable_telemetry: bool = False

    @field_validator("namespaces", mode="before")
    @classmethod
    def split_namespaces(cls, v: Any) -> Any:
        """Accept a comma-separated string."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def check_namespaces(self) -> InstallerConfig:
        """Validate database namespaces against the platform namespaces."""
        if self.namespaces:
            self.namespaces = validate_namespaces(
                self.namespaces,
                reserved=(self.system_namespace, self.monitoring.namespace),
            )
        return self

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> InstallerConfig:
        """Create configuration with environment variable overrides.

        Supported environment variables:
            OLM_INSTALL_NAMESPACES: Comma-separated database namespaces
            OLM_INSTALL_CONCURRENCY: Parallel operator installs
            OLM_INSTALL_POLL_INTERVAL: Seconds between polls
            OLM_INSTALL_POLL_TIMEOUT: Install plan poll budget in seconds
            OLM_INSTALL_CSV_WAIT: ``none`` or ``wait``
            OLM_INSTALL_MONITORING: ``false`` disables the monitoring stack
            DISABLE_TELEMETRY: ``true`` disables operator telemetry
        """
        config_dict = dict(base_config) if base_config else {}

        if namespaces := os.environ.get("OLM_INSTALL_NAMESPACES"):
            config_dict["namespaces"] = namespaces
        if concurrency := os.environ.get("OLM_INSTALL_CONCURRENCY"):
            config_dict["concurrency"] = int(concurrency)
        if interval := os.environ.get("OLM_INSTALL_POLL_INTERVAL"):
            config_dict["poll_interval"] = float(interval)
        if timeout := os.environ.get("OLM_INSTALL_POLL_TIMEOUT"):
            config_dict["poll_timeout"] = float(timeout)
        if csv_wait := os.environ.get("OLM_INSTALL_CSV_WAIT"):
            config_dict["csv_wait"] = csv_wait
        if monitoring := os.environ.get("OLM_INSTALL_MONITORING"):
            config_dict["monitoring"] = {
                **dict(config_dict.get("monitoring") or {}),
                "enabled": monitoring.lower() not in ("false", "0", "no"),
            }
        if os.environ.get("DISABLE_TELEMETRY") == "true":
            config_dict["disable_telemetry"] = True

        return cls.model_validate(config_dict)


def load_config(path: Path | None = None) -> InstallerConfig:
    """Load configuration from a YAML file with environment overrides.

    A missing or empty file yields the defaults.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
        pydantic.ValidationError: If a value is invalid.
    """
    config_path = path or CONFIG_FILE
    data: dict[str, Any] = {}
    if config_path.exists():
        content = config_path.read_text(encoding="utf-8")
        try:
            loaded = yaml.safe_load(content) if content.strip() else None
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"Configuration in {config_path} must be a mapping")
        data = loaded or {}
    return InstallerConfig.from_env(data)
