"""Kubernetes connection configuration model."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class KubernetesConfig(BaseModel):
    """Connection settings for the target cluster."""

    model_config = ConfigDict(extra="forbid")

    kubeconfig: str | None = None
    context: str | None = None
    namespace: str = "default"
    timeout: int = 300
    retry_attempts: int = 3

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        if not v:
            return None
        return str(Path(v).expanduser())

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is at least one."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> KubernetesConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            OLM_K8S_KUBECONFIG: Path to the kubeconfig file
            OLM_K8S_CONTEXT: Kubeconfig context to use
            OLM_K8S_NAMESPACE: Default namespace
            OLM_K8S_TIMEOUT: Default timeout in seconds
            OLM_K8S_RETRIES: Attempts for transient connection errors
        """
        config_dict = base_config.copy() if base_config else {}

        if kubeconfig := os.environ.get("OLM_K8S_KUBECONFIG"):
            config_dict["kubeconfig"] = kubeconfig
        if context := os.environ.get("OLM_K8S_CONTEXT"):
            config_dict["context"] = context
        if namespace := os.environ.get("OLM_K8S_NAMESPACE"):
            config_dict["namespace"] = namespace
        if timeout := os.environ.get("OLM_K8S_TIMEOUT"):
            config_dict["timeout"] = int(timeout)
        if retries := os.environ.get("OLM_K8S_RETRIES"):
            config_dict["retry_attempts"] = int(retries)

        return cls.model_validate(config_dict)
