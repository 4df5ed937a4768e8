"""Kubernetes integration - API client and configuration models."""

from olm_orchestrator.integrations.kubernetes.client import KubernetesClient
from olm_orchestrator.integrations.kubernetes.config import KubernetesConfig
from olm_orchestrator.integrations.kubernetes.exceptions import (
    KubernetesAlreadyExistsError,
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
)

__all__ = [
    "KubernetesAlreadyExistsError",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConfig",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesError",
    "KubernetesNotFoundError",
    "KubernetesTimeoutError",
    "KubernetesValidationError",
]
