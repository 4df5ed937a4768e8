"""Operator Lifecycle Manager resource models.

OLM CRDs are accessed via ``CustomObjectsApi`` which returns raw ``dict``
objects rather than typed SDK classes.  The ``from_k8s_object`` classmethods
therefore use ``dict.get()`` instead of ``getattr()``.
"""

from __future__ import annotations

import copy
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from olm_orchestrator.integrations.kubernetes.models.base import K8sEntityBase

OLM_GROUP = "operators.coreos.com"
OLM_VERSION_V1ALPHA1 = "v1alpha1"
OLM_VERSION_V1 = "v1"
PACKAGES_GROUP = "packages.operators.coreos.com"
PACKAGES_VERSION = "v1"

APPROVAL_MANUAL = "Manual"

CSV_PHASE_SUCCEEDED = "Succeeded"
CSV_PHASE_FAILED = "Failed"


class NamespacedName(BaseModel):
    """A (namespace, name) key for a namespaced object."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class InstallRequest(BaseModel):
    """Desired state for one operator install.

    The subscription is always created with ``Manual`` approval; the approval
    engine approves the resulting install plan itself.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace: str = Field(description="Namespace the operator is installed into")
    name: str = Field(description="Operator (subscription) name")
    operator_group: str = Field(description="OperatorGroup name in the namespace")
    catalog_source: str = Field(description="CatalogSource providing the package")
    catalog_namespace: str = Field(description="Namespace of the CatalogSource")
    channel: str = Field(description="Package channel to track")
    starting_csv: str | None = Field(default=None, description="CSV to start from")
    approval: Literal["Manual"] = APPROVAL_MANUAL
    package: str | None = Field(default=None, description="Package name, defaults to name")
    target_namespaces: tuple[str, ...] = Field(
        default=(), description="OperatorGroup target namespaces"
    )
    env: dict[str, str] = Field(
        default_factory=dict, description="Environment passed to the operator pod"
    )

    @property
    def package_name(self) -> str:
        """Catalog package name."""
        return self.package or self.name

    @property
    def key(self) -> NamespacedName:
        """Subscription key."""
        return NamespacedName(namespace=self.namespace, name=self.name)


# =============================================================================
# Subscription
# =============================================================================


class Subscription(K8sEntityBase):
    """OLM Subscription model."""

    _entity_name: ClassVar[str] = "subscription"

    channel: str = Field(default="", description="Tracked channel")
    package: str = Field(default="", description="Package name")
    source: str = Field(default="", description="CatalogSource name")
    source_namespace: str = Field(default="", description="CatalogSource namespace")
    starting_csv: str | None = Field(default=None, description="Starting CSV")
    install_plan_ref: NamespacedName | None = Field(
        default=None, description="Reference to the current install plan"
    )
    current_csv: str | None = Field(default=None, description="CSV OLM is driving towards")
    installed_csv: str | None = Field(default=None, description="CSV that is installed")
    state: str | None = Field(default=None, description="Subscription state")
    conditions: list[dict[str, Any]] = Field(default_factory=list, description="Conditions")

    @property
    def has_install_plan(self) -> bool:
        """Whether OLM has resolved the channel to an install plan."""
        return self.install_plan_ref is not None

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> Subscription:
        """Create from a Subscription CRD dict."""
        metadata: dict[str, Any] = obj.get("metadata", {})
        spec: dict[str, Any] = obj.get("spec", {})
        status: dict[str, Any] = obj.get("status") or {}
        namespace = metadata.get("namespace")

        plan_ref = None
        ref: dict[str, Any] = status.get("installPlanRef") or status.get("installplan") or {}
        if ref.get("name"):
            plan_ref = NamespacedName(
                namespace=ref.get("namespace") or namespace or "",
                name=ref["name"],
            )

        return cls(
            name=metadata.get("name", ""),
            namespace=namespace,
            uid=metadata.get("uid"),
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=metadata.get("labels") or None,
            channel=spec.get("channel", ""),
            package=spec.get("name", ""),
            source=spec.get("source", ""),
            source_namespace=spec.get("sourceNamespace", ""),
            starting_csv=spec.get("startingCSV"),
            install_plan_ref=plan_ref,
            current_csv=status.get("currentCSV"),
            installed_csv=status.get("installedCSV"),
            state=status.get("state"),
            conditions=status.get("conditions", []),
        )


# =============================================================================
# InstallPlan
# =============================================================================


class InstallPlan(K8sEntityBase):
    """OLM InstallPlan model.

    Instances are frozen. Approving a plan produces a new object through
    :meth:`with_approval` so a stale copy is never written back.
    """

    model_config = ConfigDict(frozen=True)

    _entity_name: ClassVar[str] = "installplan"

    approved: bool = Field(default=False, description="Whether the plan is approved")
    approval: str = Field(default=APPROVAL_MANUAL, description="Approval strategy")
    phase: str | None = Field(default=None, description="Plan phase")
    csv_names: list[str] = Field(default_factory=list, description="CSVs the plan installs")
    resource_version: str | None = Field(default=None, description="Object resourceVersion")
    raw: dict[str, Any] = Field(default_factory=dict, repr=False, description="Source object")

    def with_approval(self) -> InstallPlan:
        """Return a copy of this plan marked approved."""
        return self.model_copy(update={"approved": True})

    def to_k8s_object(self) -> dict[str, Any]:
        """Render the update body for this plan."""
        body = copy.deepcopy(self.raw) if self.raw else {}
        body.setdefault("apiVersion", f"{OLM_GROUP}/{OLM_VERSION_V1ALPHA1}")
        body.setdefault("kind", "InstallPlan")
        metadata = body.setdefault("metadata", {})
        metadata["name"] = self.name
        if self.namespace:
            metadata["namespace"] = self.namespace
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        spec = body.setdefault("spec", {})
        spec["approved"] = self.approved
        spec.setdefault("approval", self.approval)
        spec.setdefault("clusterServiceVersionNames", list(self.csv_names))
        return body

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> InstallPlan:
        """Create from an InstallPlan CRD dict."""
        metadata: dict[str, Any] = obj.get("metadata", {})
        spec: dict[str, Any] = obj.get("spec", {})
        status: dict[str, Any] = obj.get("status") or {}

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=metadata.get("labels") or None,
            approved=bool(spec.get("approved", False)),
            approval=spec.get("approval", APPROVAL_MANUAL),
            phase=status.get("phase"),
            csv_names=spec.get("clusterServiceVersionNames", []),
            resource_version=metadata.get("resourceVersion"),
            raw=copy.deepcopy(obj),
        )


# =============================================================================
# ClusterServiceVersion
# =============================================================================


class ClusterServiceVersion(K8sEntityBase):
    """OLM ClusterServiceVersion model."""

    _entity_name: ClassVar[str] = "clusterserviceversion"

    phase: str | None = Field(default=None, description="CSV phase")
    reason: str | None = Field(default=None, description="Reason for the phase")
    message: str | None = Field(default=None, description="Human-readable status")

    @property
    def is_succeeded(self) -> bool:
        return self.phase == CSV_PHASE_SUCCEEDED

    @property
    def is_failed(self) -> bool:
        return self.phase == CSV_PHASE_FAILED

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> ClusterServiceVersion:
        """Create from a ClusterServiceVersion CRD dict."""
        metadata: dict[str, Any] = obj.get("metadata", {})
        status: dict[str, Any] = obj.get("status") or {}

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=metadata.get("labels") or None,
            phase=status.get("phase"),
            reason=status.get("reason"),
            message=status.get("message"),
        )


# =============================================================================
# OperatorGroup
# =============================================================================


class OperatorGroup(K8sEntityBase):
    """OLM OperatorGroup model."""

    _entity_name: ClassVar[str] = "operatorgroup"

    target_namespaces: list[str] = Field(
        default_factory=list, description="Namespaces the group's operators watch"
    )

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> OperatorGroup:
        """Create from an OperatorGroup CRD dict."""
        metadata: dict[str, Any] = obj.get("metadata", {})
        spec: dict[str, Any] = obj.get("spec") or {}

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=metadata.get("labels") or None,
            target_namespaces=spec.get("targetNamespaces", []),
        )


# =============================================================================
# Deployment snapshot
# =============================================================================


class DeploymentSnapshot(BaseModel):
    """Names of database-engine controller deployments seen at one point in time."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    names: frozenset[str] = frozenset()

    def differs_from(self, later: DeploymentSnapshot) -> bool:
        """Whether a restart is needed between this snapshot and a later one.

        True only when this (earlier) snapshot saw at least one controller and
        the number of controllers changed afterwards.
        """
        return bool(self.names) and len(self.names) != len(later.names)
