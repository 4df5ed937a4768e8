"""Workload resource models."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from olm_orchestrator.integrations.kubernetes.models.base import (
    K8sEntityBase,
    _get_labels,
    _get_timestamp,
    _safe_get,
)


class DeploymentSummary(K8sEntityBase):
    """Deployment model with the fields needed to judge a rollout."""

    _entity_name: ClassVar[str] = "deployment"

    replicas: int = Field(default=0, description="Desired replicas")
    ready_replicas: int = Field(default=0, description="Ready replicas")
    available_replicas: int = Field(default=0, description="Available replicas")
    updated_replicas: int = Field(default=0, description="Updated replicas")
    generation: int = Field(default=0, description="Spec generation")
    observed_generation: int = Field(default=0, description="Generation seen by the controller")

    @property
    def is_rolled_out(self) -> bool:
        """Whether the latest spec is fully rolled out and available.

        Mirrors ``kubectl rollout status``: the controller must have observed
        the current generation and every desired replica must be updated and
        available.
        """
        if self.observed_generation < self.generation:
            return False
        return (
            self.updated_replicas >= self.replicas
            and self.available_replicas >= self.replicas
            and self.ready_replicas >= self.replicas
        )

    @classmethod
    def from_k8s_object(cls, obj: Any) -> DeploymentSummary:
        """Create from a kubernetes V1Deployment object."""
        return cls(
            name=_safe_get(obj, "metadata", "name", default=""),
            namespace=_safe_get(obj, "metadata", "namespace"),
            uid=_safe_get(obj, "metadata", "uid"),
            creation_timestamp=_get_timestamp(_safe_get(obj, "metadata", "creation_timestamp")),
            labels=_get_labels(obj),
            replicas=_safe_get(obj, "spec", "replicas", default=0) or 0,
            ready_replicas=_safe_get(obj, "status", "ready_replicas", default=0) or 0,
            available_replicas=_safe_get(obj, "status", "available_replicas", default=0) or 0,
            updated_replicas=_safe_get(obj, "status", "updated_replicas", default=0) or 0,
            generation=_safe_get(obj, "metadata", "generation", default=0) or 0,
            observed_generation=_safe_get(obj, "status", "observed_generation", default=0) or 0,
        )
