"""Kubernetes service layer."""

from olm_orchestrator.services.kubernetes.cluster_gateway import ClusterGateway
from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway
from olm_orchestrator.services.kubernetes.manifest_manager import (
    ApplyResult,
    ManifestManager,
    decode_manifests,
)

__all__ = [
    "ApplyResult",
    "ClusterGateway",
    "KubernetesGateway",
    "ManifestManager",
    "decode_manifests",
]
