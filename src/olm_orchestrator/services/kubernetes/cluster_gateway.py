"""Production :class:`KubernetesGateway` backed by the kubernetes client.

OLM objects are read and written through ``CustomObjectsApi``; deployments
through ``AppsV1Api``; manifest bundles through :class:`ManifestManager`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from olm_orchestrator.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)
from olm_orchestrator.integrations.kubernetes.models.olm import (
    APPROVAL_MANUAL,
    OLM_GROUP,
    OLM_VERSION_V1,
    OLM_VERSION_V1ALPHA1,
    PACKAGES_GROUP,
    PACKAGES_VERSION,
    ClusterServiceVersion,
    InstallPlan,
    NamespacedName,
    OperatorGroup,
    Subscription,
)
from olm_orchestrator.integrations.kubernetes.models.workloads import DeploymentSummary
from olm_orchestrator.services.kubernetes.base import K8sBaseManager
from olm_orchestrator.services.kubernetes.gateway import (
    DEFAULT_PACKAGE_NAMESPACE,
    KubernetesGateway,
)
from olm_orchestrator.services.kubernetes.manifest_manager import ManifestManager
from olm_orchestrator.utils.polling import poll_until

if TYPE_CHECKING:
    from olm_orchestrator.integrations.kubernetes.client import KubernetesClient
    from olm_orchestrator.utils.concurrency import CancelToken

DEFAULT_POLL_INTERVAL = 1.0
RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"

# Controller deployments of the database engine operators
DEFAULT_ENGINE_DEPLOYMENTS = (
    "percona-xtradb-cluster-operator",
    "percona-server-mongodb-operator",
    "percona-postgresql-operator",
)


@dataclass(frozen=True)
class CustomResource:
    """API coordinates of a custom resource."""

    group: str
    version: str
    plural: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


class ClusterGateway(K8sBaseManager, KubernetesGateway):
    """Gateway talking to a live cluster."""

    _entity_name: str = "olm"

    def __init__(
        self,
        client: KubernetesClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        engine_deployments: Iterable[str] = DEFAULT_ENGINE_DEPLOYMENTS,
    ) -> None:
        super().__init__(client)
        self._poll_interval = poll_interval
        self._engine_deployments = frozenset(engine_deployments)
        self._manifests = ManifestManager(client)
        self._retry = client.make_retry_decorator()
        self._resources: dict[str, CustomResource] = {}
        self._initialized = False
        self._initialize()

    def _initialize(self) -> None:
        """Register the OLM resource coordinates this gateway uses."""
        if self._initialized:
            return
        for group, version, plural, kind in (
            (OLM_GROUP, OLM_VERSION_V1ALPHA1, "subscriptions", "Subscription"),
            (OLM_GROUP, OLM_VERSION_V1ALPHA1, "installplans", "InstallPlan"),
            (OLM_GROUP, OLM_VERSION_V1ALPHA1, "clusterserviceversions", "ClusterServiceVersion"),
            (OLM_GROUP, OLM_VERSION_V1, "operatorgroups", "OperatorGroup"),
            (PACKAGES_GROUP, PACKAGES_VERSION, "packagemanifests", "PackageManifest"),
        ):
            self._resources[kind.lower()] = CustomResource(group, version, plural, kind)
        self._initialized = True
        self._log.debug("registered_olm_resources", kinds=sorted(self._resources))

    # =========================================================================
    # Custom object helpers
    # =========================================================================

    def _get_custom(self, key: str, namespace: str, name: str) -> dict[str, Any]:
        """Read a custom object, retrying transient connection errors."""
        resource = self._resources[key]

        @self._retry
        def fetch() -> dict[str, Any]:
            try:
                result: dict[str, Any] = self._client.custom_objects.get_namespaced_custom_object(
                    group=resource.group,
                    version=resource.version,
                    namespace=namespace,
                    plural=resource.plural,
                    name=name,
                )
                return result
            except Exception as e:
                self._handle_api_error(e, resource.kind, name, namespace)

        return fetch()

    def _create_custom(self, key: str, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        resource = self._resources[key]
        name = body.get("metadata", {}).get("name")
        try:
            result: dict[str, Any] = self._client.custom_objects.create_namespaced_custom_object(
                group=resource.group,
                version=resource.version,
                namespace=namespace,
                plural=resource.plural,
                body=body,
            )
            return result
        except Exception as e:
            self._handle_api_error(e, resource.kind, name, namespace)

    # =========================================================================
    # Manifests and deployments
    # =========================================================================

    def apply_file(self, data: bytes) -> None:
        self._manifests.apply_bytes(data)

    def create_namespace(self, name: str) -> None:
        body = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}}
        try:
            self._client.core_v1.create_namespace(body=body)
        except Exception as e:
            self._handle_api_error(e, "Namespace", name)

    def get_deployment(self, name: str, namespace: str) -> DeploymentSummary:
        try:
            result = self._client.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)
            return DeploymentSummary.from_k8s_object(result)
        except Exception as e:
            self._handle_api_error(e, "Deployment", name, namespace)

    def list_engine_deployment_names(self, namespace: str) -> list[str]:
        try:
            result = self._client.apps_v1.list_namespaced_deployment(namespace=namespace)
        except Exception as e:
            self._handle_api_error(e, "Deployment", None, namespace)
        names = [
            item.metadata.name
            for item in result.items
            if item.metadata is not None and item.metadata.name in self._engine_deployments
        ]
        return sorted(names)

    def restart(self, deployment_name: str, namespace: str) -> None:
        """Restart a deployment by patching the pod template annotation.

        Equivalent to ``kubectl rollout restart deployment``.
        """
        self._log.info("restarting_deployment", name=deployment_name, namespace=namespace)
        now = datetime.now(UTC).isoformat()
        patch = {
            "spec": {"template": {"metadata": {"annotations": {RESTARTED_AT_ANNOTATION: now}}}}
        }
        try:
            self._client.apps_v1.patch_namespaced_deployment(
                name=deployment_name, namespace=namespace, body=patch
            )
        except Exception as e:
            self._handle_api_error(e, "Deployment", deployment_name, namespace)
        self._log.info("restarted_deployment", name=deployment_name, namespace=namespace)

    # =========================================================================
    # OLM objects
    # =========================================================================

    def get_operator_group(self, namespace: str, name: str) -> OperatorGroup:
        return OperatorGroup.from_k8s_object(self._get_custom("operatorgroup", namespace, name))

    def create_operator_group(
        self,
        namespace: str,
        name: str,
        target_namespaces: Sequence[str] | None = None,
    ) -> OperatorGroup:
        resource = self._resources["operatorgroup"]
        body: dict[str, Any] = {
            "apiVersion": resource.api_version,
            "kind": resource.kind,
            "metadata": {"name": name, "namespace": namespace},
            "spec": {"targetNamespaces": list(target_namespaces or [])},
        }
        self._log.info("creating_operator_group", name=name, namespace=namespace)
        return OperatorGroup.from_k8s_object(self._create_custom("operatorgroup", namespace, body))

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
        approval: str = APPROVAL_MANUAL,
        env: Mapping[str, str] | None = None,
    ) -> Subscription:
        resource = self._resources["subscription"]
        spec: dict[str, Any] = {
            "channel": channel,
            "name": package or name,
            "source": catalog_source,
            "sourceNamespace": catalog_namespace,
            "installPlanApproval": approval,
        }
        if starting_csv:
            spec["startingCSV"] = starting_csv
        if env:
            spec["config"] = {"env": [{"name": k, "value": v} for k, v in env.items()]}
        body: dict[str, Any] = {
            "apiVersion": resource.api_version,
            "kind": resource.kind,
            "metadata": {"name": name, "namespace": namespace},
            "spec": spec,
        }
        self._log.info("creating_subscription", name=name, namespace=namespace, channel=channel)
        return Subscription.from_k8s_object(self._create_custom("subscription", namespace, body))

    def get_subscription(self, namespace: str, name: str) -> Subscription:
        return Subscription.from_k8s_object(self._get_custom("subscription", namespace, name))

    def get_install_plan(self, namespace: str, name: str) -> InstallPlan:
        return InstallPlan.from_k8s_object(self._get_custom("installplan", namespace, name))

    def update_install_plan(self, namespace: str, plan: InstallPlan) -> InstallPlan:
        resource = self._resources["installplan"]
        try:
            result = self._client.custom_objects.replace_namespaced_custom_object(
                group=resource.group,
                version=resource.version,
                namespace=namespace,
                plural=resource.plural,
                name=plan.name,
                body=plan.to_k8s_object(),
            )
        except Exception as e:
            self._handle_api_error(e, resource.kind, plan.name, namespace)
        return InstallPlan.from_k8s_object(result)

    def get_cluster_service_version(self, key: NamespacedName) -> ClusterServiceVersion:
        return ClusterServiceVersion.from_k8s_object(
            self._get_custom("clusterserviceversion", key.namespace, key.name)
        )

    # =========================================================================
    # Waits
    # =========================================================================

    def do_rollout_wait(
        self, key: NamespacedName, timeout: float, cancel: CancelToken | None = None
    ) -> None:
        def rolled_out() -> bool:
            try:
                return self.get_deployment(key.name, key.namespace).is_rolled_out
            except KubernetesNotFoundError:
                return False

        self._log.debug("waiting_for_rollout", deployment=str(key), timeout=timeout)
        poll_until(
            rolled_out,
            interval=self._poll_interval,
            timeout=timeout,
            cancel=cancel,
            description=f"rollout of deployment {key}",
        )

    def do_package_wait(
        self,
        package: str,
        timeout: float,
        cancel: CancelToken | None = None,
        *,
        namespace: str = DEFAULT_PACKAGE_NAMESPACE,
    ) -> None:
        def visible() -> bool:
            try:
                self._get_custom("packagemanifest", namespace, package)
                return True
            except KubernetesNotFoundError:
                return False

        self._log.debug("waiting_for_package", package=package, namespace=namespace)
        poll_until(
            visible,
            interval=self._poll_interval,
            timeout=timeout,
            cancel=cancel,
            description=f"package {package} in {namespace}",
        )

    def do_csv_wait(
        self, key: NamespacedName, timeout: float, cancel: CancelToken | None = None
    ) -> None:
        def succeeded() -> bool:
            try:
                csv = self.get_cluster_service_version(key)
            except KubernetesNotFoundError:
                return False
            if csv.is_failed:
                raise KubernetesError(
                    message=f"ClusterServiceVersion failed: {csv.reason or 'unknown reason'}"
                    + (f" ({csv.message})" if csv.message else ""),
                    resource_type="ClusterServiceVersion",
                    resource_name=key.name,
                    namespace=key.namespace,
                )
            return csv.is_succeeded

        self._log.debug("waiting_for_csv", csv=str(key), timeout=timeout)
        poll_until(
            succeeded,
            interval=self._poll_interval,
            timeout=timeout,
            cancel=cancel,
            description=f"cluster service version {key}",
        )
