"""Kubernetes resource models."""

from olm_orchestrator.integrations.kubernetes.models.base import K8sEntityBase
from olm_orchestrator.integrations.kubernetes.models.olm import (
    ClusterServiceVersion,
    DeploymentSnapshot,
    InstallPlan,
    InstallRequest,
    NamespacedName,
    OperatorGroup,
    Subscription,
)
from olm_orchestrator.integrations.kubernetes.models.workloads import DeploymentSummary

__all__ = [
    "ClusterServiceVersion",
    "DeploymentSnapshot",
    "DeploymentSummary",
    "InstallPlan",
    "InstallRequest",
    "K8sEntityBase",
    "NamespacedName",
    "OperatorGroup",
    "Subscription",
]
