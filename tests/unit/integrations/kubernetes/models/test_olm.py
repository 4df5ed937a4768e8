"""Unit tests for OLM resource models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from olm_orchestrator.integrations.kubernetes.models.olm import (
    ClusterServiceVersion,
    DeploymentSnapshot,
    InstallPlan,
    InstallRequest,
    NamespacedName,
    OperatorGroup,
    Subscription,
)


def _subscription(status: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "metadata": {"name": "everest-operator", "namespace": "everest-system"},
        "spec": {
            "channel": "stable-v0",
            "name": "everest-operator",
            "source": "everest-catalog",
            "sourceNamespace": "olm",
        },
        "status": status,
    }


@pytest.mark.unit
@pytest.mark.kubernetes
class TestInstallRequest:
    """Test InstallRequest model."""

    def test_package_defaults_to_name(self) -> None:
        """Test the package name falls back to the operator name."""
        request = InstallRequest(
            namespace="db",
            name="percona-postgresql-operator",
            operator_group="everest-databases",
            catalog_source="everest-catalog",
            catalog_namespace="olm",
            channel="stable-v2",
        )
        assert request.package_name == "percona-postgresql-operator"
        assert request.key == NamespacedName(namespace="db", name="percona-postgresql-operator")

    def test_only_manual_approval(self) -> None:
        """Test automatic approval is rejected."""
        with pytest.raises(ValidationError):
            InstallRequest(
                namespace="db",
                name="a",
                operator_group="g",
                catalog_source="c",
                catalog_namespace="olm",
                channel="stable",
                approval="Automatic",  # type: ignore[arg-type]
            )


@pytest.mark.unit
@pytest.mark.kubernetes
class TestSubscription:
    """Test Subscription model."""

    def test_without_status(self) -> None:
        """Test a fresh subscription has no install plan."""
        subscription = Subscription.from_k8s_object(_subscription(None))

        assert subscription.channel == "stable-v0"
        assert subscription.source_namespace == "olm"
        assert not subscription.has_install_plan

    def test_install_plan_ref(self) -> None:
        """Test the installPlanRef field is parsed."""
        subscription = Subscription.from_k8s_object(
            _subscription({"installPlanRef": {"name": "install-x", "namespace": "other"}})
        )
        assert subscription.install_plan_ref == NamespacedName(namespace="other", name="install-x")

    def test_legacy_installplan_field(self) -> None:
        """Test the older installplan field is used when the ref is absent."""
        subscription = Subscription.from_k8s_object(
            _subscription({"installplan": {"name": "install-y"}, "currentCSV": "a.v1"})
        )
        assert subscription.install_plan_ref == NamespacedName(
            namespace="everest-system", name="install-y"
        )
        assert subscription.current_csv == "a.v1"


@pytest.mark.unit
@pytest.mark.kubernetes
class TestInstallPlan:
    """Test InstallPlan model."""

    RAW: dict[str, Any] = {
        "apiVersion": "operators.coreos.com/v1alpha1",
        "kind": "InstallPlan",
        "metadata": {"name": "install-x", "namespace": "db", "resourceVersion": "42"},
        "spec": {
            "approved": False,
            "approval": "Manual",
            "clusterServiceVersionNames": ["a.v1"],
            "generation": 1,
        },
        "status": {"phase": "RequiresApproval"},
    }

    def test_from_k8s_object(self) -> None:
        """Test fields are read from the dict."""
        plan = InstallPlan.from_k8s_object(self.RAW)

        assert not plan.approved
        assert plan.phase == "RequiresApproval"
        assert plan.csv_names == ["a.v1"]
        assert plan.resource_version == "42"

    def test_with_approval_is_a_copy(self) -> None:
        """Test approval returns a new object and leaves the original alone."""
        plan = InstallPlan.from_k8s_object(self.RAW)

        approved = plan.with_approval()

        assert approved.approved
        assert not plan.approved
        with pytest.raises(ValidationError):
            plan.approved = True  # type: ignore[misc]

    def test_to_k8s_object_preserves_raw(self) -> None:
        """Test the update body keeps unknown fields and sets the version."""
        body = InstallPlan.from_k8s_object(self.RAW).with_approval().to_k8s_object()

        assert body["spec"]["approved"] is True
        assert body["spec"]["generation"] == 1
        assert body["metadata"]["resourceVersion"] == "42"
        assert self.RAW["spec"]["approved"] is False

    def test_to_k8s_object_without_raw(self) -> None:
        """Test a body is rendered from fields alone."""
        body = InstallPlan(name="p", namespace="db", csv_names=["a.v1"]).to_k8s_object()

        assert body["kind"] == "InstallPlan"
        assert body["spec"] == {
            "approved": False,
            "approval": "Manual",
            "clusterServiceVersionNames": ["a.v1"],
        }
        assert "resourceVersion" not in body["metadata"]


@pytest.mark.unit
@pytest.mark.kubernetes
class TestOtherModels:
    """Test CSV, OperatorGroup and snapshot models."""

    @pytest.mark.parametrize(
        ("phase", "succeeded", "failed"),
        [("Succeeded", True, False), ("Failed", False, True), ("Installing", False, False)],
    )
    def test_csv_phase(self, phase: str, succeeded: bool, failed: bool) -> None:
        """Test phase helpers."""
        csv = ClusterServiceVersion.from_k8s_object(
            {"metadata": {"name": "a.v1"}, "status": {"phase": phase}}
        )
        assert csv.is_succeeded is succeeded
        assert csv.is_failed is failed

    def test_operator_group_targets(self) -> None:
        """Test target namespaces are read, defaulting to all namespaces."""
        group = OperatorGroup.from_k8s_object(
            {"metadata": {"name": "g"}, "spec": {"targetNamespaces": ["db"]}}
        )
        assert group.target_namespaces == ["db"]
        assert OperatorGroup.from_k8s_object({"metadata": {"name": "g"}}).target_namespaces == []

    @pytest.mark.parametrize(
        ("before", "after", "expected"),
        [
            (set(), {"a"}, False),
            ({"a"}, {"a"}, False),
            ({"a"}, {"a", "b"}, True),
            ({"a", "b"}, {"a"}, True),
        ],
    )
    def test_snapshot_differs(self, before: set[str], after: set[str], expected: bool) -> None:
        """Test a restart is needed only when a non-empty set changed size."""
        earlier = DeploymentSnapshot(namespace="db", names=frozenset(before))
        later = DeploymentSnapshot(namespace="db", names=frozenset(after))

        assert earlier.differs_from(later) is expected
