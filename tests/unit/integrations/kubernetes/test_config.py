"""Unit tests for Kubernetes configuration models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from olm_orchestrator.integrations.kubernetes.config import KubernetesConfig


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesConfig:
    """Test KubernetesConfig Pydantic model."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = KubernetesConfig()
        assert config.kubeconfig is None
        assert config.context is None
        assert config.namespace == "default"
        assert config.timeout == 300
        assert config.retry_attempts == 3

    def test_kubeconfig_path_expansion(self) -> None:
        """Test that tilde in kubeconfig path is expanded."""
        config = KubernetesConfig(kubeconfig="~/custom/config")
        assert config.kubeconfig == str(Path("~/custom/config").expanduser())

    def test_empty_kubeconfig_is_none(self) -> None:
        """Test an empty path falls back to the default lookup."""
        assert KubernetesConfig(kubeconfig="").kubeconfig is None

    @pytest.mark.parametrize(("field", "value"), [("timeout", 0), ("retry_attempts", 0)])
    def test_invalid_values(self, field: str, value: int) -> None:
        """Test non-positive limits are rejected."""
        with pytest.raises(ValidationError):
            KubernetesConfig(**{field: value})

    def test_extra_fields_forbidden(self) -> None:
        """Test unknown keys are rejected."""
        with pytest.raises(ValidationError):
            KubernetesConfig(cluster="prod")  # type: ignore[call-arg]


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesConfigFromEnv:
    """Test environment overrides."""

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test every supported variable is read."""
        monkeypatch.setenv("OLM_K8S_KUBECONFIG", "/tmp/kubeconfig")
        monkeypatch.setenv("OLM_K8S_CONTEXT", "kind-olm")
        monkeypatch.setenv("OLM_K8S_NAMESPACE", "everest-system")
        monkeypatch.setenv("OLM_K8S_TIMEOUT", "60")
        monkeypatch.setenv("OLM_K8S_RETRIES", "5")

        config = KubernetesConfig.from_env()

        assert config.kubeconfig == "/tmp/kubeconfig"
        assert config.context == "kind-olm"
        assert config.namespace == "everest-system"
        assert config.timeout == 60
        assert config.retry_attempts == 5

    def test_env_takes_precedence_over_base(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment values win over the base config."""
        monkeypatch.setenv("OLM_K8S_CONTEXT", "from-env")

        config = KubernetesConfig.from_env({"context": "from-base", "namespace": "olm"})

        assert config.context == "from-env"
        assert config.namespace == "olm"

    def test_base_not_mutated(self) -> None:
        """Test the base dict is copied."""
        base = {"namespace": "olm"}

        KubernetesConfig.from_env(base)

        assert base == {"namespace": "olm"}
