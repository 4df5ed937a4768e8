"""Capability interface the installer uses to talk to a cluster.

Installer components depend only on :class:`KubernetesGateway`. Every
operation is synchronous and makes a single attempt; retry policy belongs to
the caller. Absence is reported as
:class:`~olm_orchestrator.integrations.kubernetes.exceptions.KubernetesNotFoundError`
so callers can treat it as a normal outcome.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from olm_orchestrator.integrations.kubernetes.models.olm import (
        ClusterServiceVersion,
        InstallPlan,
        NamespacedName,
        OperatorGroup,
        Subscription,
    )
    from olm_orchestrator.integrations.kubernetes.models.workloads import DeploymentSummary
    from olm_orchestrator.utils.concurrency import CancelToken

DEFAULT_PACKAGE_NAMESPACE = "olm"


class KubernetesGateway(ABC):
    """Kubernetes and OLM operations needed by the installer."""

    @abstractmethod
    def apply_file(self, data: bytes) -> None:
        """Apply every document of a YAML bundle.

        Raises:
            KubernetesError: If any document fails.
        """

    @abstractmethod
    def create_namespace(self, name: str) -> None:
        """Create a namespace.

        Raises:
            KubernetesAlreadyExistsError: If it exists.
        """

    @abstractmethod
    def get_deployment(self, name: str, namespace: str) -> DeploymentSummary:
        """Read a deployment.

        Raises:
            KubernetesNotFoundError: If it does not exist.
        """

    @abstractmethod
    def get_operator_group(self, namespace: str, name: str) -> OperatorGroup:
        """Read an operator group.

        Raises:
            KubernetesNotFoundError: If it does not exist.
        """

    @abstractmethod
    def create_operator_group(
        self,
        namespace: str,
        name: str,
        target_namespaces: Sequence[str] | None = None,
    ) -> OperatorGroup:
        """Create an operator group."""

    @abstractmethod
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
        """Create a subscription to a catalog package.

        Raises:
            KubernetesAlreadyExistsError: If the subscription exists.
        """

    @abstractmethod
    def get_subscription(self, namespace: str, name: str) -> Subscription:
        """Read a subscription.

        Raises:
            KubernetesNotFoundError: If it does not exist.
        """

    @abstractmethod
    def get_install_plan(self, namespace: str, name: str) -> InstallPlan:
        """Read an install plan."""

    @abstractmethod
    def update_install_plan(self, namespace: str, plan: InstallPlan) -> InstallPlan:
        """Write an install plan back.

        Raises:
            KubernetesConflictError: If the plan changed since it was read.
        """

    @abstractmethod
    def get_cluster_service_version(self, key: NamespacedName) -> ClusterServiceVersion:
        """Read a cluster service version."""

    @abstractmethod
    def do_rollout_wait(
        self, key: NamespacedName, timeout: float, cancel: CancelToken | None = None
    ) -> None:
        """Wait until a deployment is rolled out.

        Raises:
            KubernetesTimeoutError: If ``timeout`` elapses first.
        """

    @abstractmethod
    def do_package_wait(
        self,
        package: str,
        timeout: float,
        cancel: CancelToken | None = None,
        *,
        namespace: str = DEFAULT_PACKAGE_NAMESPACE,
    ) -> None:
        """Wait until a package manifest is served by a catalog.

        Raises:
            KubernetesTimeoutError: If ``timeout`` elapses first.
        """

    @abstractmethod
    def do_csv_wait(
        self, key: NamespacedName, timeout: float, cancel: CancelToken | None = None
    ) -> None:
        """Wait until a cluster service version succeeds.

        Raises:
            KubernetesTimeoutError: If ``timeout`` elapses first.
            KubernetesError: If the CSV reaches the ``Failed`` phase.
        """

    @abstractmethod
    def list_engine_deployment_names(self, namespace: str) -> list[str]:
        """Names of database-engine controller deployments in a namespace."""

    @abstractmethod
    def restart(self, deployment_name: str, namespace: str) -> None:
        """Trigger a rolling restart of a deployment."""
