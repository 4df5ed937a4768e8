"""In-memory gateway and fixtures for installer tests."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import pytest

from olm_orchestrator.integrations.kubernetes.exceptions import (
    KubernetesAlreadyExistsError,
    KubernetesConflictError,
    KubernetesError,
    KubernetesNotFoundError,
)
from olm_orchestrator.integrations.kubernetes.models.olm import (
    ClusterServiceVersion,
    InstallPlan,
    InstallRequest,
    NamespacedName,
    OperatorGroup,
    Subscription,
)
from olm_orchestrator.integrations.kubernetes.models.workloads import DeploymentSummary
from olm_orchestrator.services.installer.approval import InstallPlanApprovalEngine
from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway
from olm_orchestrator.utils.concurrency import CancelToken


class FakeGateway(KubernetesGateway):
    """Records every call and simulates OLM just enough for the installer.

    Subscriptions reference the install plan ``install-<name>`` unless
    ``plan_refs`` scripts a different sequence per poll. Each plan carries a
    resourceVersion that is bumped on every write; ``conflicts`` makes the
    next N approval updates fail as if OLM had written the plan first.
    The platform controller only exists in ``controller_namespace``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], float]] = []
        self.lock = threading.Lock()
        self.operator_groups: dict[tuple[str, str], list[str]] = {}
        self.subscriptions: dict[tuple[str, str], dict[str, Any]] = {}
        self.plan_refs: dict[tuple[str, str], list[str | None]] = {}
        self.plans: dict[tuple[str, str], dict[str, Any]] = {}
        self.installed_csvs: dict[tuple[str, str], str] = {}
        self.csv_phases: dict[tuple[str, str], str] = {}
        self.conflicts = 0
        self.engine_deployments: list[list[str]] = [[]]
        self.deployments: dict[tuple[str, str], DeploymentSummary] = {}
        self.namespaces: set[str] = set()
        self.applied: list[bytes] = []
        self.apply_failures: list[Exception] = []
        self.rollout_waits: list[str] = []
        self.package_waits: list[tuple[str, str]] = []
        self.csv_waits: list[str] = []
        self.restarts: list[tuple[str, str]] = []
        self.controller_namespace = "everest-system"
        self.errors: dict[str, Exception] = {}
        self.subscribe_barrier: threading.Barrier | None = None

    # helpers -----------------------------------------------------------------

    def _record(self, method: str, *args: Any) -> None:
        with self.lock:
            self.calls.append((method, args, time.monotonic()))
        if method in self.errors:
            raise self.errors[method]

    def call_names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def count(self, method: str) -> int:
        return self.call_names().count(method)

    def plan(self, namespace: str, name: str) -> dict[str, Any]:
        return self.plans.setdefault(
            (namespace, name),
            {"approved": False, "resourceVersion": 1, "csv": f"{name}.v1.0.0"},
        )

    # gateway -----------------------------------------------------------------

    def apply_file(self, data: bytes) -> None:
        self._record("apply_file", data)
        if self.apply_failures:
            raise self.apply_failures.pop(0)
        self.applied.append(data)

    def create_namespace(self, name: str) -> None:
        self._record("create_namespace", name)
        if name in self.namespaces:
            raise KubernetesAlreadyExistsError(resource_type="Namespace", resource_name=name)
        self.namespaces.add(name)

    def get_deployment(self, name: str, namespace: str) -> DeploymentSummary:
        self._record("get_deployment", name, namespace)
        try:
            return self.deployments[(namespace, name)]
        except KeyError:
            raise KubernetesNotFoundError(
                resource_type="Deployment", resource_name=name, namespace=namespace
            ) from None

    def get_operator_group(self, namespace: str, name: str) -> OperatorGroup:
        self._record("get_operator_group", namespace, name)
        if (namespace, name) not in self.operator_groups:
            raise KubernetesNotFoundError(resource_type="OperatorGroup", resource_name=name)
        return OperatorGroup(
            name=name,
            namespace=namespace,
            target_namespaces=self.operator_groups[(namespace, name)],
        )

    def create_operator_group(
        self,
        namespace: str,
        name: str,
        target_namespaces: Sequence[str] | None = None,
    ) -> OperatorGroup:
        self._record("create_operator_group", namespace, name, target_namespaces)
        with self.lock:
            if (namespace, name) in self.operator_groups:
                raise KubernetesAlreadyExistsError(resource_type="OperatorGroup")
            self.operator_groups[(namespace, name)] = list(target_namespaces or [])
        return OperatorGroup(name=name, namespace=namespace)

    def create_subscription_for_catalog(
        self,
        namespace: str,
        name: str,
        catalog_namespace: str,
        catalog_source: str,
        channel: str,
        starting_csv: str | None = None,
        *,
        package: str | None = None,
        approval: str = "Manual",
        env: Mapping[str, str] | None = None,
    ) -> Subscription:
        self._record("create_subscription_for_catalog", namespace, name)
        if self.subscribe_barrier is not None:
            self.subscribe_barrier.wait()
        with self.lock:
            if (namespace, name) in self.subscriptions:
                raise KubernetesAlreadyExistsError(resource_type="Subscription")
            self.subscriptions[(namespace, name)] = {
                "catalog_namespace": catalog_namespace,
                "catalog_source": catalog_source,
                "channel": channel,
                "starting_csv": starting_csv,
                "package": package,
                "approval": approval,
                "env": dict(env or {}),
            }
        return Subscription(name=name, namespace=namespace, channel=channel)

    def get_subscription(self, namespace: str, name: str) -> Subscription:
        self._record("get_subscription", namespace, name)
        if (namespace, name) not in self.subscriptions:
            raise KubernetesNotFoundError(resource_type="Subscription", resource_name=name)
        scripted = self.plan_refs.get((namespace, name))
        if scripted is None:
            ref: str | None = f"install-{name}"
        else:
            ref = scripted.pop(0) if len(scripted) > 1 else scripted[0]
        return Subscription(
            name=name,
            namespace=namespace,
            install_plan_ref=NamespacedName(namespace=namespace, name=ref) if ref else None,
            installed_csv=self.installed_csvs.get((namespace, name)),
        )

    def get_install_plan(self, namespace: str, name: str) -> InstallPlan:
        self._record("get_install_plan", namespace, name)
        state = self.plan(namespace, name)
        return InstallPlan(
            name=name,
            namespace=namespace,
            approved=state["approved"],
            csv_names=[state["csv"]],
            resource_version=str(state["resourceVersion"]),
        )

    def update_install_plan(self, namespace: str, plan: InstallPlan) -> InstallPlan:
        self._record("update_install_plan", namespace, plan.name, plan.approved)
        with self.lock:
            state = self.plan(namespace, plan.name)
            if self.conflicts > 0:
                self.conflicts -= 1
                state["resourceVersion"] += 1
                raise KubernetesConflictError(resource_type="InstallPlan")
            if plan.resource_version != str(state["resourceVersion"]):
                raise KubernetesConflictError(resource_type="InstallPlan")
            state["approved"] = plan.approved
            state["resourceVersion"] += 1
            version = str(state["resourceVersion"])
        return plan.model_copy(update={"resource_version": version})

    def get_cluster_service_version(self, key: NamespacedName) -> ClusterServiceVersion:
        self._record("get_cluster_service_version", key)
        return ClusterServiceVersion(
            name=key.name,
            namespace=key.namespace,
            phase=self.csv_phases.get((key.namespace, key.name), "Succeeded"),
        )

    def do_rollout_wait(
        self, key: NamespacedName, timeout: float, cancel: CancelToken | None = None
    ) -> None:
        self._record("do_rollout_wait", key, timeout)
        self.rollout_waits.append(str(key))

    def do_package_wait(
        self,
        package: str,
        timeout: float,
        cancel: CancelToken | None = None,
        *,
        namespace: str = "olm",
    ) -> None:
        self._record("do_package_wait", package, timeout)
        self.package_waits.append((namespace, package))

    def do_csv_wait(
        self, key: NamespacedName, timeout: float, cancel: CancelToken | None = None
    ) -> None:
        self._record("do_csv_wait", key, timeout)
        if self.csv_phases.get((key.namespace, key.name)) == "Failed":
            raise KubernetesError(f"ClusterServiceVersion {key} failed")
        self.csv_waits.append(str(key))

    def list_engine_deployment_names(self, namespace: str) -> list[str]:
        self._record("list_engine_deployment_names", namespace)
        with self.lock:
            names = (
                self.engine_deployments.pop(0)
                if len(self.engine_deployments) > 1
                else self.engine_deployments[0]
            )
        return sorted(names)

    def restart(self, deployment_name: str, namespace: str) -> None:
        self._record("restart", deployment_name, namespace)
        if namespace != self.controller_namespace:
            raise KubernetesNotFoundError(
                resource_type="Deployment", resource_name=deployment_name, namespace=namespace
            )
        self.restarts.append((deployment_name, namespace))


def build_request(name: str = "engine-a", namespace: str = "db", **kwargs: Any) -> InstallRequest:
    """Build an install request with test defaults."""
    values: dict[str, Any] = {
        "namespace": namespace,
        "name": name,
        "operator_group": "everest-databases",
        "catalog_source": "everest-catalog",
        "catalog_namespace": "olm",
        "channel": "stable",
    }
    values.update(kwargs)
    return InstallRequest(**values)


@pytest.fixture
def make_request() -> Callable[..., InstallRequest]:
    """Factory for install requests."""
    return build_request


@pytest.fixture
def gateway() -> FakeGateway:
    """Fresh in-memory gateway."""
    return FakeGateway()


@pytest.fixture
def engine(gateway: FakeGateway) -> InstallPlanApprovalEngine:
    """Approval engine polling fast enough for unit tests."""
    return InstallPlanApprovalEngine(gateway, poll_interval=0.01, poll_timeout=2.0)
